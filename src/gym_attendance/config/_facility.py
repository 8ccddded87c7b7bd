"""Facility settings shared by every environment (all overridable by env)."""

import os

from ..core import constants

FACILITY_TIMEZONE = os.getenv("FACILITY_TIMEZONE", constants.DEFAULT_TIMEZONE)
DAY_START_TIME = os.getenv("DAY_START_TIME", constants.DEFAULT_DAY_START)
LATE_GRACE_MINUTES = int(os.getenv("LATE_GRACE_MINUTES", str(constants.DEFAULT_LATE_GRACE_MINUTES)))
MONTHLY_USAGE_CAP = int(os.getenv("MONTHLY_USAGE_CAP", str(constants.DEFAULT_MONTHLY_USAGE_CAP)))
STALE_SESSION_HOURS = float(os.getenv("STALE_SESSION_HOURS", str(constants.DEFAULT_STALE_SESSION_HOURS)))
EXPIRY_ADVISORY_DAYS = int(os.getenv("EXPIRY_ADVISORY_DAYS", str(constants.DEFAULT_EXPIRY_ADVISORY_DAYS)))
EXPIRY_WARNING_DAYS = tuple(
    int(d) for d in os.getenv("EXPIRY_WARNING_DAYS", ",".join(map(str, constants.DEFAULT_EXPIRY_WARNING_DAYS))).split(",")
    if d.strip()
)
INACTIVITY_DAYS = int(os.getenv("INACTIVITY_DAYS", str(constants.DEFAULT_INACTIVITY_DAYS)))

DEFAULT_ZONE = {
    "name": os.getenv("DEFAULT_ZONE_NAME", constants.DEFAULT_ZONE_NAME),
    "latitude": float(os.getenv("DEFAULT_ZONE_LAT", str(constants.DEFAULT_ZONE_LAT))),
    "longitude": float(os.getenv("DEFAULT_ZONE_LON", str(constants.DEFAULT_ZONE_LON))),
    "radius_m": float(os.getenv("DEFAULT_ZONE_RADIUS_M", str(constants.DEFAULT_ZONE_RADIUS_M))),
}

# JOB_<NAME>_CRON overrides a job's crontab, e.g. JOB_MORNING_GREETINGS_CRON="30 5 * * *".
JOB_TRIGGERS = {
    name: ({"cron": os.environ[f"JOB_{name.upper()}_CRON"]} if os.getenv(f"JOB_{name.upper()}_CRON") else trigger)
    for name, trigger in constants.DEFAULT_JOB_TRIGGERS.items()
}
