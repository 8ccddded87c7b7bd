"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_TIMEZONE = "Asia/Kathmandu"
DEFAULT_DAY_START = "09:00"
DEFAULT_LATE_GRACE_MINUTES = 15
DEFAULT_MONTHLY_USAGE_CAP = 26
DEFAULT_STALE_SESSION_HOURS = 4
DEFAULT_EXPIRY_ADVISORY_DAYS = 3
DEFAULT_EXPIRY_WARNING_DAYS = (1, 3)
DEFAULT_INACTIVITY_DAYS = 3
DEFAULT_HISTORY_LIMIT = 30
DEFAULT_WEEKLY_PROGRESS_DAYS = 7
DEFAULT_NOTIFICATION_WORKERS = 4

# Fallback zone used when the zone store is empty.
DEFAULT_ZONE_NAME = "Main gym"
DEFAULT_ZONE_LAT = 27.684185017430245
DEFAULT_ZONE_LON = 85.33338702577204
DEFAULT_ZONE_RADIUS_M = 100.0

DEFAULT_OPEN_TIME = "05:00"
DEFAULT_CLOSE_TIME = "20:00"
# Python weekday numbers (Monday=0) closed by default.
DEFAULT_CLOSED_WEEKDAYS = (5,)

EARTH_RADIUS_M = 6371e3

# Reconciliation job triggers, evaluated in the facility timezone.
DEFAULT_JOB_TRIGGERS = {
    "expire_memberships": {"cron": "1 0 * * *"},
    "close_stale_sessions": {"interval_minutes": 60},
    "morning_greetings": {"cron": "0 6 * * *"},
    "workout_reminders": {"cron": "0 5-19 * * *"},
    "expiry_warnings": {"cron": "0 9 * * *"},
    "evening_reminders": {"cron": "0 16 * * *"},
    "inactivity_reminders": {"cron": "0 18 * * *"},
    "weekly_progress": {"cron": "0 10 * * sun"},
}
