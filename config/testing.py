import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "absensi_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"
CORS_ORIGINS = ["http://localhost:3000"]

WORK_START_TIME = "08:00"
LATE_GRACE_MINUTES = 0
STRICT_GEOFENCE = False
MAX_LOCATION_TOLERANCE_METERS = 500

NOTIFICATION_POLL_SECONDS = 0.01
SSE_HEARTBEAT_SECONDS = 30
SSE_MAX_DURATION_SECONDS = 1

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
