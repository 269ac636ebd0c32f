# aquador_app/models/course.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import uuid
from datetime import datetime
from ..extensions import db


class SwimClass(db.Model):
    __tablename__ = "classes"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(160), nullable=False)
    description = db.Column(db.Text)
    level = db.Column(db.String(40), nullable=False, default="beginner")
    capacity = db.Column(db.Integer, nullable=False, default=10)
    price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    duration_minutes = db.Column(db.Integer, nullable=False, default=60)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    sessions = db.relationship("ClassSession", back_populates="swim_class", lazy="dynamic")


class ClassSession(db.Model):
    """Sessões do calendário; somente leitura nesta API."""
    __tablename__ = "class_sessions"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    class_id = db.Column(db.String(36), db.ForeignKey("classes.id"), index=True, nullable=False)
    session_date = db.Column(db.DateTime, nullable=False, index=True)
    max_participants = db.Column(db.Integer, nullable=False, default=10)
    status = db.Column(db.String(20), default="scheduled")  # scheduled, cancelled, completed
    notes = db.Column(db.Text)

    swim_class = db.relationship("SwimClass", back_populates="sessions")
