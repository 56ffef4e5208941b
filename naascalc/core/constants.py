"""
naascalc Constants

Timing defaults, sanitisation limits and business bounds used by the
calculation core.
"""

# ==================== Calculation Timing ====================

CALCULATION_DEBOUNCE_MS = 50
DEFAULT_PRIORITY = 0
MAX_CALCULATION_HISTORY_SIZE = 50

# ==================== Sanitisation Limits ====================

MAX_STRING_LENGTH = 255
MAX_STRING_LENGTH_SHORT = 100
MAX_STRING_LENGTH_MEDIUM = 50
MAX_OBJECT_DEPTH = 3
MAX_ARRAY_SIZE = 100
MAX_ARRAY_SIZE_SHORT = 50
MAX_KEY_LENGTH = 100

# ==================== Project Bounds ====================

MIN_SITES = 1
MAX_SITES = 1000
MIN_USERS = 1
MAX_USERS = 100000
DEFAULT_USER_COUNT = 100

VALID_TIMELINES = ("short", "medium", "long")
VALID_COMPLEXITY = ("low", "medium", "high")
DEFAULT_TIMELINE = "medium"
DEFAULT_COMPLEXITY = "medium"

# ==================== Data Version ====================

DATA_VERSION = "2.0.0"
