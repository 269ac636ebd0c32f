# aquador_app/services/cleanup_service.py
# -*- coding: utf-8 -*-
"""
Varredura periódica (scheduler, CLI ou /functions/cleanup-cancelled-enrollments).

1. Inscrições canceladas há mais de 24h recebem exatamente um evento "cleanup".
   Nenhuma inscrição é apagada; ``cleanup_logged_at`` marca as já registradas.
2. Eventos de reserva e de pagamento mais antigos que a retenção (90 dias) são expurgados.

Falhas por item e em cada expurgo são logadas e não interrompem o restante.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Enrollment, SwimClass, ReservationEvent, PaymentEvent
from ..models.enrollment import STATUS_CANCELLED
from ..utils import isoformat, utcnow
from .audit import log_reservation_event
from .enrollment_service import visibility_window

CLEANUP_REASON = "expired_visibility_window"


@dataclass
class CleanupResult:
    cleaned_enrollments: int = 0   # candidatas encontradas nesta execução
    logged: int = 0
    failed: int = 0
    skipped: int = 0               # já reivindicadas por outra varredura concorrente
    purged_reservation_events: int | None = 0
    purged_payment_events: int | None = 0
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "cleaned_enrollments": self.cleaned_enrollments,
            "logged": self.logged,
            "failed": self.failed,
            "skipped": self.skipped,
            "purged_reservation_events": self.purged_reservation_events,
            "purged_payment_events": self.purged_payment_events,
            "timestamp": isoformat(self.timestamp),
            "message": "Cleanup completed successfully",
        }


def retention_period() -> timedelta:
    return timedelta(days=current_app.config.get("EVENT_RETENTION_DAYS", 90))


def find_expired_cancellations(now: datetime | None = None):
    """(id, cancelled_at, class_name) das canceladas com janela vencida e ainda não registradas."""
    cutoff = (now or utcnow()) - visibility_window()
    return (db.session.query(Enrollment.id, Enrollment.cancelled_at, SwimClass.name.label("class_name"))
            .outerjoin(SwimClass, SwimClass.id == Enrollment.class_id)
            .filter(Enrollment.status == STATUS_CANCELLED,
                    Enrollment.cancelled_at.isnot(None),
                    Enrollment.cancelled_at <= cutoff,
                    Enrollment.cleanup_logged_at.is_(None))
            .order_by(Enrollment.cancelled_at.asc())
            .all())


def _log_cleanup(row, now: datetime) -> bool:
    # UPDATE condicional = reivindicação; outra varredura que chegou antes zera o rowcount
    claimed = (Enrollment.query
               .filter(Enrollment.id == row.id,
                       Enrollment.status == STATUS_CANCELLED,
                       Enrollment.cleanup_logged_at.is_(None))
               .update({Enrollment.cleanup_logged_at: now}, synchronize_session=False))
    if not claimed:
        db.session.rollback()
        return False

    log_reservation_event(
        row.id, "cleanup", None,
        {
            "cleanup_reason": CLEANUP_REASON,
            "cancelled_at": isoformat(row.cancelled_at),
            "cleaned_up_at": isoformat(now),
            "class_name": row.class_name or "Unknown",
        },
        occurred_at=now,
    )
    db.session.commit()
    return True


def purge_old_events(now: datetime | None = None) -> dict[str, int | None]:
    """Remove eventos (pagamento e reserva) anteriores à retenção. None = expurgo falhou."""
    cutoff = (now or utcnow()) - retention_period()
    purged: dict[str, int | None] = {}
    for model in (PaymentEvent, ReservationEvent):
        try:
            deleted = (model.query
                       .filter(model.occurred_at < cutoff)
                       .delete(synchronize_session=False))
            db.session.commit()
            purged[model.__tablename__] = deleted
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Failed to cleanup old %s", model.__tablename__)
            purged[model.__tablename__] = None
    return purged


def run_cleanup(now: datetime | None = None) -> CleanupResult:
    now = now or utcnow()
    log = current_app.logger
    log.info("Starting cleanup of cancelled enrollments older than %s", visibility_window())

    # falha ao buscar candidatas é fatal para a execução (vira 500 no endpoint)
    expired = find_expired_cancellations(now)
    result = CleanupResult(cleaned_enrollments=len(expired), timestamp=now)
    log.info("Found %d expired cancelled enrollments", len(expired))

    for row in expired:
        try:
            if _log_cleanup(row, now):
                result.logged += 1
            else:
                result.skipped += 1
        except SQLAlchemyError:
            db.session.rollback()
            result.failed += 1
            log.exception("Failed to log cleanup for enrollment %s", row.id)

    purged = purge_old_events(now)
    result.purged_payment_events = purged.get(PaymentEvent.__tablename__)
    result.purged_reservation_events = purged.get(ReservationEvent.__tablename__)

    log.info(
        "Cleanup done: %d logged, %d failed, %d skipped; purged %s reservation / %s payment events",
        result.logged, result.failed, result.skipped,
        result.purged_reservation_events, result.purged_payment_events,
    )
    return result
