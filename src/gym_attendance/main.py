from __future__ import annotations

import atexit
import importlib
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask
from loguru import logger

from .config import get_settings_module

from .common.log import configure_logging
from .common.web import install_error_handlers
from .database.bootstrap import apply_schema, ensure_facility_defaults, list_tables

from .container import build_container
from .attendance.controller import register as register_attendance
from .geofence.controller import register as register_geofence
from .members.controller import register as register_members
from .reconciliation.controller import register as register_jobs


def create_app() -> Flask:
    load_dotenv(override=False)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"), getattr(settings, "LOG_DIR", "") or None)

    app = Flask(__name__)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    db_config = getattr(settings, "DB_CONFIG")
    logger.info(
        f"settings={settings_module} "
        f"db={db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        schema_path = Path(__file__).resolve().parents[2] / "database" / "schema.sql"
        apply_schema(db_config, schema_path=schema_path)
        ensure_facility_defaults(db_config)

    # Raises here when the store is unreachable, before anything is served.
    logger.info(f"Schema ready (tables={len(list_tables(db_config))})")

    container = build_container(settings=settings)
    app.extensions["gym_attendance"] = container

    install_error_handlers(app)
    register_members(app, container)
    register_attendance(app, container)
    register_geofence(app, container)
    register_jobs(app, container)

    atexit.register(container.notifier.shutdown)
    if bool(getattr(settings, "SCHEDULER_ENABLED", False)):
        container.runner.start()
        atexit.register(container.runner.stop)

    return app
