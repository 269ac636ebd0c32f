# aquador_app/services/audit.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime

from ..extensions import db
from ..models import ReservationEvent, PaymentEvent
from ..utils import utcnow


def log_reservation_event(enrollment_id: str, type_: str, actor_id: str | None = None,
                          metadata: dict | None = None, occurred_at: datetime | None = None) -> ReservationEvent:
    """Adiciona o evento na sessão atual. Quem chama decide o commit (mesma transação da mudança)."""
    ev = ReservationEvent(
        enrollment_id=enrollment_id,
        type=type_,
        actor_id=actor_id,
        details=metadata or {},
        occurred_at=occurred_at or utcnow(),
    )
    db.session.add(ev)
    return ev


def log_payment_event(payment_id: str, type_: str, actor_id: str | None = None,
                      metadata: dict | None = None, occurred_at: datetime | None = None) -> PaymentEvent:
    ev = PaymentEvent(
        payment_id=payment_id,
        type=type_,
        actor_id=actor_id,
        details=metadata or {},
        occurred_at=occurred_at or utcnow(),
    )
    db.session.add(ev)
    return ev


def list_events(kind: str = "reservation", subject_id: str | None = None, limit: int = 200):
    model = PaymentEvent if kind == "payment" else ReservationEvent
    q = model.query
    if subject_id:
        col = model.payment_id if model is PaymentEvent else model.enrollment_id
        q = q.filter(col == subject_id)
    return q.order_by(model.occurred_at.desc(), model.id.desc()).limit(limit).all()
