# aquador_app/__init__.py
# -*- coding: utf-8 -*-
from __future__ import annotations

import os

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from config import Config, TestingConfig, StagingConfig, ProductionConfig
from .errors import ServiceError
from .extensions import db, scheduler, init_extensions, register_cli, schedule_jobs
from .blueprints.core import bp as core_bp
from .blueprints.auth import bp as auth_bp
from .blueprints.enrollments import bp as enrollments_bp
from .blueprints.payments import bp as payments_bp
from .blueprints.functions import bp as functions_bp
from .blueprints.calendar import bp as calendar_bp
from .blueprints.admin import bp as admin_bp
from .utils import utcnow

_CONFIGS = {
    "testing": TestingConfig,
    "staging": StagingConfig,
    "production": ProductionConfig,
}


def create_app(config_object: type[Config] | None = None) -> Flask:

    app = Flask(__name__)
    app_env = os.getenv("APP_ENV", "").lower()
    app.config.from_object(config_object or _CONFIGS.get(app_env, Config))
    # URI definida depois do import do config (ex.: testes com SQLite temporário)
    if os.getenv("SQLALCHEMY_DATABASE_URI"):
        app.config["SQLALCHEMY_DATABASE_URI"] = os.environ["SQLALCHEMY_DATABASE_URI"]

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Extensões (DB/Bcrypt/Migrate/Scheduler)
    init_extensions(app)
    app.config["STARTED_AT"] = utcnow().strftime("%Y-%m-%d %H:%M:%S UTC")

    # Blueprints
    app.register_blueprint(core_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(enrollments_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(functions_bp)
    app.register_blueprint(calendar_bp)
    app.register_blueprint(admin_bp)
    # CLI (ex.: flask init-db, flask cleanup-enrollments)
    register_cli(app)
    register_error_handlers(app)

    # Scheduler (varredura das inscrições canceladas)
    if not app.config.get("TESTING") and os.getenv("DISABLE_SCHEDULER") != "1":
        schedule_jobs(app)
        if not scheduler.running:
            scheduler.start()

    return app


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ServiceError)
    def _service_error(exc: ServiceError):
        return jsonify(success=False, error=exc.message), exc.status_code

    @app.errorhandler(Exception)
    def _unhandled(exc: Exception):
        if isinstance(exc, HTTPException):
            return jsonify(success=False, error=exc.description), exc.code
        db.session.rollback()
        app.logger.exception("Unhandled error")
        return jsonify(success=False, error=str(exc) if app.debug else "Internal server error"), 500
