"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

STANDARD_WORK_HOURS = 8

HRA_RATE = 0.40
PF_RATE = 0.12
TAX_RATE = 0.10

MAX_LOGIN_ATTEMPTS = 5
LOCK_HOURS = 2
MIN_PASSWORD_LENGTH = 6
DEFAULT_CREATED_PASSWORD = "defaultPassword123"
DEFAULT_COMPANY = "DAYFLOW"

DEFAULT_LEAVE_BALANCE = {
    "annual": 12,
    "sick": 10,
    "personal": 5,
    "casual": 7,
}
MAX_REASON_LENGTH = 500
MAX_NOTES_LENGTH = 500
DEFAULT_REJECTION_REASON = "No reason provided"

DEFAULT_PAGE_LIMIT = 50
DEFAULT_USER_PAGE_LIMIT = 100
MAX_PAGE_LIMIT = 500

ADMIN_DEVICE_INFO = {"user_agent": "Admin Portal", "platform": "admin"}

API_VERSION = "1.0.0"
