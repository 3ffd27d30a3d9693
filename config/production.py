import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "field_attendance"),
}

JWT_SECRET = os.getenv("JWT_SECRET", "please-set-JWT_SECRET")
JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", "please-set-JWT_REFRESH_SECRET")
JWT_ISSUER = os.getenv("JWT_ISSUER", "field-attendance")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "field-workers")
ACCESS_TOKEN_TTL_HOURS = int(os.getenv("ACCESS_TOKEN_TTL_HOURS", "24"))
REFRESH_TOKEN_TTL_DAYS = int(os.getenv("REFRESH_TOKEN_TTL_DAYS", "7"))

LOGIN_RATE_LIMIT = {
    "max_attempts": int(os.getenv("LOGIN_MAX_ATTEMPTS", "5")),
    "window_seconds": int(os.getenv("LOGIN_WINDOW_SECONDS", "900")),
    "block_seconds": int(os.getenv("LOGIN_BLOCK_SECONDS", "1800")),
}

SYNC_DEFAULT_STRATEGY = os.getenv("SYNC_DEFAULT_STRATEGY", "server_wins")

SWEEP_INTERVAL_SECONDS = int(os.getenv("SWEEP_INTERVAL_SECONDS", "300"))
ENABLE_SWEEPERS = bool(int(os.getenv("ENABLE_SWEEPERS", "1")))

# Reverse proxies in front of the app whose X-Forwarded-* headers are trusted.
TRUSTED_PROXY_HOPS = int(os.getenv("TRUSTED_PROXY_HOPS", "0"))

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
