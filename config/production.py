import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "absensi"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "absensi_db"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = [o for o in os.getenv("CORS_ORIGINS", "").split(",") if o]

WORK_START_TIME = os.getenv("WORK_START_TIME", "08:00")
LATE_GRACE_MINUTES = int(os.getenv("LATE_GRACE_MINUTES", "0"))
STRICT_GEOFENCE = bool(int(os.getenv("STRICT_GEOFENCE", "0")))
MAX_LOCATION_TOLERANCE_METERS = int(os.getenv("MAX_LOCATION_TOLERANCE_METERS", "500"))

NOTIFICATION_POLL_SECONDS = float(os.getenv("NOTIFICATION_POLL_SECONDS", "5"))
SSE_HEARTBEAT_SECONDS = float(os.getenv("SSE_HEARTBEAT_SECONDS", "30"))
SSE_MAX_DURATION_SECONDS = float(os.getenv("SSE_MAX_DURATION_SECONDS", "300"))

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
