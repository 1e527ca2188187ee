import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "absensi_db"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")

# Attendance rules
WORK_START_TIME = os.getenv("WORK_START_TIME", "08:00")
LATE_GRACE_MINUTES = int(os.getenv("LATE_GRACE_MINUTES", "0"))
# When false an out-of-radius check-in is still recorded (is_valid_location = false)
STRICT_GEOFENCE = bool(int(os.getenv("STRICT_GEOFENCE", "0")))
MAX_LOCATION_TOLERANCE_METERS = int(os.getenv("MAX_LOCATION_TOLERANCE_METERS", "500"))

# Notification stream
NOTIFICATION_POLL_SECONDS = float(os.getenv("NOTIFICATION_POLL_SECONDS", "5"))
SSE_HEARTBEAT_SECONDS = float(os.getenv("SSE_HEARTBEAT_SECONDS", "30"))
SSE_MAX_DURATION_SECONDS = float(os.getenv("SSE_MAX_DURATION_SECONDS", "300"))

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo data on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
