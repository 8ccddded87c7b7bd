from __future__ import annotations

from dataclasses import dataclass
from types import ModuleType
from typing import Optional

from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceTracker
from .common.locks import KeyedLock
from .config.app_config import AppConfig
from .database.connection import DBConfig, DatabaseConnection
from .facility.model import FacilitySchedule
from .facility.mysql_facility_repository import MySQLFacilityScheduleRepository
from .facility.repository import FacilityScheduleRepository
from .facility.service import FacilityScheduleService
from .geofence.model import Zone
from .geofence.mysql_zone_repository import MySQLZoneRepository
from .geofence.repository import ZoneRepository
from .geofence.validator import GeofenceValidator
from .members.mysql_member_repository import MySQLMemberRepository
from .members.repository import MemberRepository
from .members.service import MembershipLedger
from .notifications.gateway import LoggingNotificationGateway, NotificationGateway, Notifier
from .reconciliation.jobs import ReconciliationJobs
from .reconciliation.mysql_job_run_repository import MySQLJobRunRepository
from .reconciliation.repository import JobRunRepository
from .reconciliation.runner import ReconciliationRunner, build_job_specs


@dataclass(frozen=True)
class Container:
    config: AppConfig

    members_repo: MemberRepository
    sessions_repo: AttendanceRepository
    zones_repo: ZoneRepository
    job_runs_repo: JobRunRepository

    notifier: Notifier
    schedules: FacilityScheduleService
    geofence: GeofenceValidator
    ledger: MembershipLedger
    tracker: AttendanceTracker
    jobs: ReconciliationJobs
    runner: ReconciliationRunner

    conn: Optional[DatabaseConnection] = None


def assemble(
    *,
    config: AppConfig,
    members_repo: MemberRepository,
    sessions_repo: AttendanceRepository,
    zones_repo: ZoneRepository,
    facility_repo: Optional[FacilityScheduleRepository],
    job_runs_repo: JobRunRepository,
    job_triggers: dict,
    gateway: Optional[NotificationGateway] = None,
    fallback_zone: Optional[Zone] = None,
    background_notifications: bool = True,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services over the given stores (MySQL in production, fakes in tests)."""
    notifier = Notifier(gateway or LoggingNotificationGateway(), background=background_notifications)
    schedules = FacilityScheduleService(facility_repo, FacilitySchedule.default())
    geofence = GeofenceValidator(zones_repo, fallback_zone=fallback_zone)
    ledger = MembershipLedger(members_repo, config, notifier=notifier)
    tracker = AttendanceTracker(
        sessions_repo,
        ledger,
        geofence,
        schedules,
        config,
        notifier=notifier,
        strategy_factory=AttendanceStrategyFactory(),
        locks=KeyedLock(),
    )
    jobs = ReconciliationJobs(
        members=members_repo,
        sessions=sessions_repo,
        ledger=ledger,
        tracker=tracker,
        schedules=schedules,
        job_runs=job_runs_repo,
        notifier=notifier,
        config=config,
    )
    runner = ReconciliationRunner(build_job_specs(jobs, job_triggers), timezone=config.timezone)

    return Container(
        config=config,
        members_repo=members_repo,
        sessions_repo=sessions_repo,
        zones_repo=zones_repo,
        job_runs_repo=job_runs_repo,
        notifier=notifier,
        schedules=schedules,
        geofence=geofence,
        ledger=ledger,
        tracker=tracker,
        jobs=jobs,
        runner=runner,
        conn=conn,
    )


def build_container(*, settings: ModuleType) -> Container:
    db_config = getattr(settings, "DB_CONFIG")
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    config = AppConfig.from_settings(settings)

    zone = getattr(settings, "DEFAULT_ZONE", None)
    fallback_zone = None
    if zone:
        fallback_zone = Zone(
            zone_id=0,
            name=str(zone["name"]),
            latitude=float(zone["latitude"]),
            longitude=float(zone["longitude"]),
            radius_m=float(zone["radius_m"]),
        )

    return assemble(
        config=config,
        members_repo=MySQLMemberRepository(conn),
        sessions_repo=MySQLAttendanceRepository(conn),
        zones_repo=MySQLZoneRepository(conn),
        facility_repo=MySQLFacilityScheduleRepository(conn),
        job_runs_repo=MySQLJobRunRepository(conn),
        job_triggers=dict(getattr(settings, "JOB_TRIGGERS")),
        fallback_zone=fallback_zone,
        conn=conn,
    )
