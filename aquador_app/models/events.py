# aquador_app/models/events.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime
from ..extensions import db


class ReservationEvent(db.Model):
    """Trilha de auditoria das inscrições (append-only, expurgada após a retenção)."""
    __tablename__ = "reservation_events"

    id = db.Column(db.Integer, primary_key=True)
    # sem FK: a trilha sobrevive mesmo que a inscrição suma
    enrollment_id = db.Column(db.String(36), index=True, nullable=False)
    type = db.Column(db.String(40), nullable=False)   # cancel, reactivate, cleanup, enrollment_created
    actor_id = db.Column(db.String(36), nullable=True)  # None = sistema
    details = db.Column("metadata", db.JSON, default=dict)
    occurred_at = db.Column(db.DateTime, default=datetime.utcnow, index=True, nullable=False)

    def to_dict(self) -> dict:
        from ..utils import isoformat
        return {
            "id": self.id,
            "enrollment_id": self.enrollment_id,
            "type": self.type,
            "actor_id": self.actor_id,
            "metadata": self.details or {},
            "occurred_at": isoformat(self.occurred_at),
        }


class PaymentEvent(db.Model):
    __tablename__ = "payment_events"

    id = db.Column(db.Integer, primary_key=True)
    payment_id = db.Column(db.String(36), index=True, nullable=False)
    type = db.Column(db.String(40), nullable=False)   # created, paid
    actor_id = db.Column(db.String(36), nullable=True)
    details = db.Column("metadata", db.JSON, default=dict)
    occurred_at = db.Column(db.DateTime, default=datetime.utcnow, index=True, nullable=False)

    def to_dict(self) -> dict:
        from ..utils import isoformat
        return {
            "id": self.id,
            "payment_id": self.payment_id,
            "type": self.type,
            "actor_id": self.actor_id,
            "metadata": self.details or {},
            "occurred_at": isoformat(self.occurred_at),
        }
