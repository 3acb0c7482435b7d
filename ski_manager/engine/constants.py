"""Fixed ranges shared by the race engine and the season reducers."""

MAX_STAT_VALUE = 100.0
MAX_ENERGY = 100.0

FORM_RANGE = (-20.0, 20.0)
FATIGUE_RANGE = (0.0, 100.0)
MORALE_RANGE = (0.0, 100.0)

# Neutral gear when a ski or wax choice is missing from the inventory
DEFAULT_GRIP = 70.0
DEFAULT_GLIDE = 70.0

# Terrain thresholds (gradient %)
CLIMB_GRADIENT = 2.0
DESCENT_GRADIENT = -2.0
