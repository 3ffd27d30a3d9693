"""Constants and defaults.

Note: Keep thresholds here to avoid magic numbers spread across code.
"""

EARTH_RADIUS_METERS = 6_371_000
DEFAULT_GEOFENCE_RADIUS_METERS = 100

# Spoofing detection
MAX_SPEED_KMH = 150
MIN_SUSPICIOUS_ACCURACY_METERS = 1
MAX_ACCEPTABLE_ACCURACY_METERS = 500
NULL_ISLAND_TOLERANCE_DEGREES = 0.01
MIN_COORDINATE_DECIMALS = 3

# Offline sync
SYNC_MAX_AGE_DAYS = 30
SYNC_TIMESTAMP_TOLERANCE_SECONDS = 1

# Sessions
DEFAULT_ACCESS_TOKEN_TTL_HOURS = 24
DEFAULT_REFRESH_TOKEN_TTL_DAYS = 7

# Login throttling
DEFAULT_LOGIN_WINDOW_SECONDS = 15 * 60
DEFAULT_LOGIN_MAX_ATTEMPTS = 5
DEFAULT_LOGIN_BLOCK_SECONDS = 30 * 60

DEFAULT_HISTORY_LIMIT = 30
DEFAULT_SWEEP_INTERVAL_SECONDS = 5 * 60
