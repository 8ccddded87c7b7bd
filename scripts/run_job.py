"""Run one reconciliation job immediately, outside the scheduler.

Usage: python scripts/run_job.py <job_name>
"""

from __future__ import annotations

import importlib
import sys

from dotenv import load_dotenv

from gym_attendance.common.log import configure_logging
from gym_attendance.config import get_settings_module
from gym_attendance.container import build_container


def main(argv: list[str]) -> int:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    container = build_container(settings=settings)

    if len(argv) != 1 or argv[0] not in container.runner.job_names:
        print(f"usage: run_job.py <{'|'.join(container.runner.job_names)}>")
        return 2

    affected = container.runner.run_job(argv[0])
    if affected is None:
        return 1
    print(f"{argv[0]}: affected={affected}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
