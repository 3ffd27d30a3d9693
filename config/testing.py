import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "field_attendance_test"),
}

JWT_SECRET = "test-jwt-secret"
JWT_REFRESH_SECRET = "test-refresh-secret"
JWT_ISSUER = "field-attendance"
JWT_AUDIENCE = "field-workers"
ACCESS_TOKEN_TTL_HOURS = 24
REFRESH_TOKEN_TTL_DAYS = 7

LOGIN_RATE_LIMIT = {"max_attempts": 5, "window_seconds": 900, "block_seconds": 1800}

SYNC_DEFAULT_STRATEGY = "server_wins"

SWEEP_INTERVAL_SECONDS = 300
ENABLE_SWEEPERS = False

TRUSTED_PROXY_HOPS = 0

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
