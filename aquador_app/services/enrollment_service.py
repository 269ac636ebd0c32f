# aquador_app/services/enrollment_service.py
# -*- coding: utf-8 -*-
"""
Ciclo de vida da inscrição: cancelamento, janela de visibilidade e reativação.

Uma inscrição cancelada continua visível (e reativável) pelo aluno durante
CANCELLATION_VISIBILITY_HOURS a partir de ``cancelled_at``. Depois disso some
da listagem; a linha nunca é apagada, só a varredura registra a expiração.
"""
from __future__ import annotations
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import BusinessRuleError, NotFoundError
from ..extensions import db
from ..models import Enrollment, Profile, User
from ..models.enrollment import STATUS_ACTIVE, STATUS_CANCELLED
from ..utils import isoformat, utcnow
from .audit import log_reservation_event


def visibility_window() -> timedelta:
    return timedelta(hours=current_app.config.get("CANCELLATION_VISIBILITY_HOURS", 24))


def visibility_deadline(enrollment: Enrollment) -> datetime | None:
    if enrollment.status != STATUS_CANCELLED or enrollment.cancelled_at is None:
        return None
    return enrollment.cancelled_at + visibility_window()


def is_visible(enrollment: Enrollment, now: datetime | None = None) -> bool:
    if enrollment.status != STATUS_CANCELLED:
        return True
    deadline = visibility_deadline(enrollment)
    if deadline is None:
        return False
    return (now or utcnow()) < deadline


def time_remaining(enrollment: Enrollment, now: datetime | None = None) -> dict | None:
    deadline = visibility_deadline(enrollment)
    if deadline is None:
        return None
    left = max((deadline - (now or utcnow())).total_seconds(), 0)
    return {
        "hours": int(left // 3600),
        "minutes": int((left % 3600) // 60),
        "expired": left == 0,
    }


def get_profile(user: User) -> Profile:
    profile = Profile.query.filter_by(user_id=user.id).first()
    if not profile:
        raise NotFoundError("User profile not found")
    return profile


def list_visible_enrollments(profile: Profile, now: datetime | None = None) -> list[Enrollment]:
    now = now or utcnow()
    rows = (Enrollment.query
            .filter(Enrollment.student_id == profile.id,
                    Enrollment.status.in_((STATUS_ACTIVE, STATUS_CANCELLED)))
            .order_by(Enrollment.enrollment_date.desc())
            .all())
    return [e for e in rows if is_visible(e, now)]


def serialize(enrollment: Enrollment, now: datetime | None = None) -> dict:
    data = enrollment.to_dict()
    deadline = visibility_deadline(enrollment)
    remaining = time_remaining(enrollment, now)
    data["visible_until"] = isoformat(deadline)
    data["time_remaining"] = remaining
    data["can_reactivate"] = bool(remaining and not remaining["expired"])
    return data


def _load_for_update(enrollment_id: str, actor: Profile | None, is_admin: bool) -> Enrollment:
    enrollment = (Enrollment.query
                  .filter_by(id=enrollment_id)
                  .with_for_update()
                  .populate_existing()
                  .first())
    # inscrição de outro aluno é tratada como inexistente
    if not enrollment or not (is_admin or (actor is not None and enrollment.student_id == actor.id)):
        raise NotFoundError("Enrollment not found")
    return enrollment


def cancel_enrollment(enrollment_id: str, actor: Profile | None, *, is_admin: bool = False,
                      reason: str | None = None, now: datetime | None = None) -> Enrollment:
    now = now or utcnow()
    actor_id = actor.id if actor is not None else None
    enrollment = _load_for_update(enrollment_id, actor, is_admin)
    if enrollment.status != STATUS_ACTIVE:
        db.session.rollback()
        raise BusinessRuleError("Only active enrollments can be cancelled")

    try:
        enrollment.status = STATUS_CANCELLED
        enrollment.cancelled_at = now
        enrollment.cancellation_reason = (reason or "").strip()[:255] or "Annulé par l'utilisateur"
        enrollment.cleanup_logged_at = None
        log_reservation_event(
            enrollment.id, "cancel", actor_id,
            {"reason": enrollment.cancellation_reason, "cancelled_at": isoformat(now)},
            occurred_at=now,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Enrollment %s cancelled by %s", enrollment.id, actor_id)
    return enrollment


def reactivate_enrollment(enrollment_id: str, actor: Profile | None, *, is_admin: bool = False,
                          now: datetime | None = None) -> Enrollment:
    """
    Volta a inscrição para 'active' dentro da janela de 24h.

    Status, limpeza de ``cancelled_at`` e o evento "reactivate" vão num único
    commit: ou os três ficam gravados, ou nenhum.
    """
    now = now or utcnow()
    actor_id = actor.id if actor is not None else None
    enrollment = _load_for_update(enrollment_id, actor, is_admin)

    if enrollment.status != STATUS_CANCELLED or enrollment.cancelled_at is None:
        db.session.rollback()
        raise BusinessRuleError("Enrollment is not cancelled")
    if now >= visibility_deadline(enrollment):
        db.session.rollback()
        raise BusinessRuleError("Reactivation window has expired")

    previous = enrollment.cancelled_at
    try:
        enrollment.status = STATUS_ACTIVE
        enrollment.cancelled_at = None
        enrollment.cancellation_reason = None
        enrollment.cleanup_logged_at = None
        log_reservation_event(
            enrollment.id, "reactivate", actor_id,
            {"previous_cancelled_at": isoformat(previous), "reactivated_at": isoformat(now)},
            occurred_at=now,
        )
        db.session.commit()
    except IntegrityError as exc:
        # já existe outra inscrição ativa para o mesmo aluno/turma
        db.session.rollback()
        raise BusinessRuleError("Student already has an active enrollment in this class") from exc
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Error reactivating enrollment %s", enrollment_id)
        raise

    current_app.logger.info("Enrollment %s reactivated by %s", enrollment.id, actor_id)
    return enrollment
