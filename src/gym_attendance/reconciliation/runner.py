from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

import pytz
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from ..common.datetime_utils import now_utc
from .jobs import ReconciliationJobs


@dataclass(frozen=True)
class JobSpec:
    """One row of the job table.

    ``trigger`` is ``{"cron": "<crontab>"}`` or ``{"interval_minutes": n}``.
    """

    name: str
    trigger: Mapping[str, Any]
    handler: Callable[[], int]


def build_trigger(trigger: Mapping[str, Any], tz: pytz.BaseTzInfo):
    if "cron" in trigger:
        return CronTrigger.from_crontab(str(trigger["cron"]), timezone=tz)
    if "interval_minutes" in trigger:
        return IntervalTrigger(minutes=float(trigger["interval_minutes"]), timezone=tz)
    raise ValueError(f"Unsupported trigger: {dict(trigger)}")


def build_job_specs(jobs: ReconciliationJobs, triggers: Mapping[str, Mapping[str, Any]]) -> list[JobSpec]:
    handlers = {
        "expire_memberships": jobs.expire_memberships,
        "close_stale_sessions": jobs.close_stale_sessions,
        "morning_greetings": jobs.send_morning_greetings,
        "workout_reminders": jobs.send_workout_reminders,
        "expiry_warnings": jobs.send_expiry_warnings,
        "evening_reminders": jobs.send_evening_reminders,
        "inactivity_reminders": jobs.send_inactivity_reminders,
        "weekly_progress": jobs.send_weekly_progress,
    }
    return [JobSpec(name=name, trigger=triggers[name], handler=handler) for name, handler in handlers.items() if name in triggers]


class ReconciliationRunner:
    """Schedules the job table on a background scheduler.

    Jobs are isolated from each other: a failing run is logged and recorded,
    and never stops the scheduler or another job. Overlapping runs of the
    same job are skipped.
    """

    def __init__(self, specs: Iterable[JobSpec], *, timezone: str, scheduler: Optional[BackgroundScheduler] = None):
        self._specs: Dict[str, JobSpec] = {s.name: s for s in specs}
        self._tz = pytz.timezone(timezone)
        self.scheduler = scheduler or BackgroundScheduler(timezone=self._tz)
        self._guard = threading.Lock()
        self._running: set[str] = set()
        self._last_runs: Dict[str, Dict[str, Any]] = {}

    @property
    def job_names(self) -> list[str]:
        return list(self._specs)

    def setup(self) -> None:
        for spec in self._specs.values():
            self.scheduler.add_job(
                self.run_job,
                build_trigger(spec.trigger, self._tz),
                args=[spec.name],
                id=spec.name,
                name=spec.name,
                replace_existing=True,
                coalesce=True,
                max_instances=1,
            )
            logger.info(f"Scheduled job {spec.name} trigger={dict(spec.trigger)}")

    def run_job(self, name: str) -> Optional[int]:
        """Run one job now; returns its affected count, or None if it failed or was skipped."""
        spec = self._specs.get(name)
        if spec is None:
            raise KeyError(f"Unknown job: {name}")

        with self._guard:
            if name in self._running:
                logger.warning(f"Job {name} is already running, skipped")
                return None
            self._running.add(name)

        started = now_utc()
        logger.info(f"Job {name} started")
        try:
            count = spec.handler()
            self._record(name, started, ok=True, count=count)
            logger.info(f"Job {name} finished affected={count}")
            return count
        except Exception as e:
            self._record(name, started, ok=False, error=str(e))
            logger.exception(f"Job {name} failed: {e}")
            return None
        finally:
            with self._guard:
                self._running.discard(name)

    def start(self) -> None:
        self.setup()
        self.scheduler.start()
        logger.info(f"Reconciliation scheduler started with {len(self._specs)} jobs")

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info("Reconciliation scheduler stopped")

    def get_status(self) -> dict:
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append(
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run": next_run.isoformat() if next_run else None,
                }
            )
        return {
            "running": bool(self.scheduler.running),
            "jobs": jobs,
            "last_runs": dict(self._last_runs),
        }

    def _record(self, name: str, started: datetime, *, ok: bool, count: Optional[int] = None, error: Optional[str] = None):
        self._last_runs[name] = {
            "started_at": started.isoformat(),
            "ok": ok,
            "affected": count,
            "error": error,
        }
