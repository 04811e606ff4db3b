# logger.py
"""
Logging configuration for the Court Rotation engine.

This module provides centralized logging setup. The setup_logging() function
should be called once by whatever hosts the engine (a web handler process,
the simulation script, ...). The engine modules never configure handlers.

All app modules should use the "app" namespace:
    import logging
    logger = logging.getLogger("app.module_name")

This keeps third-party library logs quiet (pulp's solver wrapper included)
while allowing granular control over the app's own logging level via the
LOG_LEVEL environment variable.
"""

import logging
import os
import sys

# App namespace prefix - all app loggers should use this
APP_LOGGER_NAME = "app"


def _level_from_env(default: int = logging.INFO) -> int:
    """Reads LOG_LEVEL (e.g. "DEBUG") from the environment."""
    name = os.environ.get("LOG_LEVEL", "").strip().upper()
    level = logging.getLevelName(name) if name else default
    return level if isinstance(level, int) else default


def setup_logging(app_level: int | None = None) -> None:
    """
    Configure logging for the application.

    - Root logger is set to WARNING (keeps third-party libraries quiet)
    - App namespace logger ("app.*") is set to the specified level

    This should be called ONCE at application startup (entry point).

    Args:
        app_level: The logging level for app modules. Defaults to the
            LOG_LEVEL environment variable, else INFO.
    """
    if app_level is None:
        app_level = _level_from_env()

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.WARNING)

    # Avoid adding duplicate handlers if setup is called multiple times
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(logging.DEBUG)  # Handler accepts all; loggers filter

        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(app_level)


def log_assignment_debug(
    logger: logging.Logger,
    courts: list,
    queue: list,
    waiting: list,
    stats,
) -> None:
    """
    Log assignment debug information in a consistent format.

    Args:
        logger: Logger instance to use
        courts: Courts of the assignment
        queue: Queued matches
        waiting: Ids of waiting players
        stats: AssignmentStats of the assignment
    """
    if not logger.isEnabledFor(logging.DEBUG):
        return

    for court in courts:
        if court.match is None:
            logger.debug("%s: empty", court.label)
        else:
            logger.debug(
                "%s: %s vs %s", court.label, court.match.team_1, court.match.team_2
            )

    for position, match in enumerate(queue, start=1):
        logger.debug(
            "Queue %d: %s vs %s (pending: %s)",
            position,
            match.team_1,
            match.team_2,
            list(match.pending_players) or "-",
        )

    logger.debug("Waiting: %s", waiting)
    logger.debug("Fairness Score: %.3f", stats.fairness_score)
    logger.debug("Weight Effectiveness: %.3f", stats.weight_effectiveness)
    logger.debug("Diversity Score: %.3f", stats.diversity_score)
