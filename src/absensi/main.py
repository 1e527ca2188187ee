from __future__ import annotations

import importlib
import logging
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask
from flask.json.provider import DefaultJSONProvider
from flask_cors import CORS

from config import get_settings_module

from .approvals.controller import register as register_approvals
from .attendance.controller import register as register_attendance
from .common.http import register_error_handlers
from .common.logging_setup import configure_logging
from .container import Container, build_container
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables
from .locations.controller import register as register_locations
from .notifications.controller import register as register_notifications
from .reporting.controller import register as register_reporting
from .requests.controller import register as register_requests
from .schedules.controller import register as register_schedules
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parents[2]


class IsoJSONProvider(DefaultJSONProvider):
    """ISO-8601 dates instead of Flask's HTTP-date format."""

    @staticmethod
    def default(o):
        if isinstance(o, (datetime, date, time)):
            return o.isoformat()
        if isinstance(o, Decimal):
            return float(o)
        if isinstance(o, Enum):
            return o.value
        return DefaultJSONProvider.default(o)


def create_app(container: Optional[Container] = None, settings_module: Optional[str] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)
    app.json_provider_class = IsoJSONProvider
    app.json = IsoJSONProvider(app)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["JSON_SORT_KEYS"] = False
    db_config = getattr(settings, "DB_CONFIG")

    CORS(
        app,
        resources={r"/api/*": {"origins": getattr(settings, "CORS_ORIGINS", [])}},
        supports_credentials=True,
    )

    if container is None:
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        if getattr(settings, "AUTO_INIT_DB", False):
            apply_schema(db_config, schema_path=ROOT_DIR / "database" / "schema.sql")
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
        if getattr(settings, "AUTO_SEED_DB", False):
            apply_seed_sql(db_config, seed_path=ROOT_DIR / "database" / "seed.sql")
            ensure_demo_users(db_config)
            logger.info("demo seed ready")
        container = build_container(db_config=db_config, settings=settings)

    register_error_handlers(app)
    register_users(app, container)
    register_locations(app, container)
    register_schedules(app, container)
    register_attendance(app, container)
    register_requests(app, container)
    register_approvals(app, container)
    register_notifications(app, container)
    register_reporting(app, container)

    @app.route("/api/health", methods=["GET"], endpoint="api_health")
    def api_health():
        return {"success": True, "data": {"status": "ok"}}

    return app
