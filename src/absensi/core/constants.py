"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from .enums import LeaveType

DEFAULT_SESSION_DAYS = 7
DEFAULT_HISTORY_LIMIT = 30
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
DEFAULT_REPORT_DAYS = 7

DEFAULT_WORK_START = "08:00"
DEFAULT_LATE_GRACE_MINUTES = 0

EARTH_RADIUS_METERS = 6371e3
DEFAULT_RADIUS_METERS = 100
MIN_RADIUS_METERS = 10
MAX_RADIUS_METERS = 1000
MAX_TOLERANCE_METERS = 500

MIN_PASSWORD_LENGTH = 8
GENERATED_PASSWORD_LENGTH = 12

SUPER_ADMIN_ROLE = "Super Admin"
ADMIN_ROLE_NAMES = frozenset({"Administrator Sistem", "Super Admin", "Admin", "HR Admin"})

# Jatah cuti per tahun (hari); UNPAID tidak dibatasi.
LEAVE_ALLOWANCES = {
    LeaveType.ANNUAL: 12,
    LeaveType.SICK: 12,
    LeaveType.MATERNITY: 90,
    LeaveType.PATERNITY: 2,
    LeaveType.EMERGENCY: 2,
    LeaveType.UNPAID: 0,
}
