from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import click
from dotenv import load_dotenv
from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from config import load_settings

from .common.http import register_error_handlers
from .container import Container, build_container
from .database.bootstrap import apply_schema, list_tables
from .maintenance.sweeper import PeriodicSweeper
from .attendance.controller import register as register_attendance
from .devices.controller import register as register_devices
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parents[3] / "database" / "schema.sql"


def _configure_logging(settings: Any) -> None:
    level = str(getattr(settings, "LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _register_cli(app: Flask, container: Container) -> None:
    @app.cli.command("cleanup-sessions")
    def cleanup_sessions():
        """Mark sessions past their expiry as inactive."""
        count = container.session_manager.cleanup_expired()
        click.echo(f"Expired sessions cleaned up: {count}")


def _start_sweepers(app: Flask, container: Container) -> None:
    sweepers = [
        PeriodicSweeper(
            "sessions",
            container.session_manager.cleanup_expired,
            interval_seconds=container.sweep_interval_seconds,
        ),
        PeriodicSweeper(
            "rate-limit",
            container.rate_limiter.cleanup,
            interval_seconds=container.sweep_interval_seconds,
        ),
    ]
    for sweeper in sweepers:
        sweeper.start()
    app.extensions["field_attendance.sweepers"] = sweepers


def create_app(container: Optional[Container] = None, *, settings: Any = None) -> Flask:
    load_dotenv(override=False)
    settings = settings or load_settings()
    _configure_logging(settings)

    app = Flask(__name__)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    hops = int(getattr(settings, "TRUSTED_PROXY_HOPS", 0) or 0)
    if hops > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops)

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.debug(
            "settings=%s db=%s@%s:%s/%s",
            getattr(settings, "__name__", type(settings).__name__),
            db_config.get("user"), db_config.get("host"), db_config.get("port", 3306), db_config.get("database"),
        )
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=SCHEMA_PATH)
            logger.info("Schema ready (tables=%s)", len(list_tables(db_config)))
        container = build_container(settings)

    app.extensions["field_attendance.container"] = container

    register_error_handlers(app)
    register_users(app, container)
    register_devices(app, container)
    register_attendance(app, container)
    _register_cli(app, container)

    if bool(getattr(settings, "ENABLE_SWEEPERS", False)) and not app.config["TESTING"]:
        _start_sweepers(app, container)

    return app
