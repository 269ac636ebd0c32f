# aquador_app/blueprints/core.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from ..extensions import db, scheduler

bp = Blueprint("core", __name__)


@bp.route("/")
def index():
    return jsonify(service="A'qua D'or API", status="running", started_at=current_app.config.get("STARTED_AT"))


@bp.route("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
    except Exception:
        current_app.logger.exception("Health check failed")
        return jsonify(status="error", database="unreachable"), 503
    return jsonify(status="ok", database="ok", scheduler="running" if scheduler.running else "stopped")
