"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

MIN_SESSION_MINUTES = 15
MAX_SESSION_MINUTES = 180
DEFAULT_SESSION_MINUTES = 60

MIN_GEOFENCE_RADIUS_M = 10
MAX_GEOFENCE_RADIUS_M = 500
DEFAULT_GEOFENCE_RADIUS_M = 50

EARTH_RADIUS_M = 6_371_000.0

SESSION_CODE_PREFIX_LEN = 3
SESSION_CODE_SUFFIX_LEN = 4

TREND_MAX_DAYS = 30
DEFAULT_PAGE_SIZE = 10
DEFAULT_LIST_LIMIT = 500

DEFAULT_DB_TIMEOUT_SECONDS = 10
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_BASE_DELAY = 0.2
