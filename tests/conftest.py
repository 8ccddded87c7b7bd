from __future__ import annotations

from types import SimpleNamespace

import pytest

from fakes import FakeFacility, FakeJobRuns, FakeMembers, FakeSessions, FakeZones, RecordingGateway, gym_zone

from gym_attendance.config.app_config import AppConfig
from gym_attendance.container import assemble
from gym_attendance.core.constants import DEFAULT_JOB_TRIGGERS


@pytest.fixture
def config() -> AppConfig:
    return AppConfig()


@pytest.fixture
def stores():
    return SimpleNamespace(
        members=FakeMembers(),
        sessions=FakeSessions(),
        zones=FakeZones(gym_zone()),
        facility=FakeFacility(),
        job_runs=FakeJobRuns(),
        gateway=RecordingGateway(),
    )


@pytest.fixture
def container(config, stores):
    """Services wired over the fakes; notifications are delivered inline."""
    return assemble(
        config=config,
        members_repo=stores.members,
        sessions_repo=stores.sessions,
        zones_repo=stores.zones,
        facility_repo=stores.facility,
        job_runs_repo=stores.job_runs,
        job_triggers=dict(DEFAULT_JOB_TRIGGERS),
        gateway=stores.gateway,
        background_notifications=False,
    )
