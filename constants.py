# Court Constants
PLAYERS_PER_COURT = 4
PLAYERS_PER_TEAM = 2

# Setup Constants
DEFAULT_NUM_COURTS = 2
DEFAULT_TARGET_QUEUE_MATCHES = 2
DEFAULT_PARTITION_STRATEGY = "sequential"
DEFAULT_LEFT_REASON = "left early"
MAX_NAME_LENGTH = 20

# Preference Weight Constants
MIN_WEIGHT_STRENGTH = 1
MAX_WEIGHT_STRENGTH = 10

# Pairing Score Constants
FAIRNESS_BASE = 10.0
FAIRNESS_STDDEV_FACTOR = 2.0
TEAMMATE_WEIGHT_FACTOR = 0.5
OPPONENT_WEIGHT_FACTOR = 0.3
TEAMMATE_REPEAT_PENALTY = 0.5
OPPONENT_REPEAT_PENALTY = 0.3
JITTER_RANGE = 0.05

# Priority order of the score terms: fairness > preference > diversity > jitter
SCORE_WEIGHTS = {'fairness': 1.0, 'weight_bonus': 0.8, 'repetition': 0.6}

# Group Diversity Constants
DIVERSITY_TEAMMATE_PENALTY = 2.0
DIVERSITY_OPPONENT_PENALTY = 1.0
DIVERSITY_REST_BONUS = 0.5

# Assignment Stats Constants
STATS_FAIRNESS_DIVISOR = 10.0

# ILP Partition Constants
ILP_TIME_LIMIT_SECONDS = 5
ILP_FAIRNESS_WEIGHT = 1.0
