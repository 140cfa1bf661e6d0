"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_BUSINESS_TIMEZONE = "Asia/Jerusalem"

MS_PER_MINUTE = 60_000
MINUTES_PER_HOUR = 60

NOTE_MAX_LENGTH = 300
ENTRY_ID_PREFIX = "time"

DAY_KEY_FORMAT = "%Y-%m-%d"
MONTH_KEY_FORMAT = "%Y-%m"
