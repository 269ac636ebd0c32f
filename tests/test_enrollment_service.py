# tests/test_enrollment_service.py
# -*- coding: utf-8 -*-
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from aquador_app.errors import BusinessRuleError, NotFoundError
from aquador_app.models import Enrollment, ReservationEvent
from aquador_app.services import enrollment_service as svc

T0 = datetime(2024, 1, 1, 0, 0, 0)


@pytest.fixture
def student(make_user):
    return make_user("student@test.com")


@pytest.fixture
def swim_class(make_class):
    return make_class(name="Natation Enfants")


# --------------------------
# janela de visibilidade
# --------------------------
def test_active_enrollment_is_always_visible(db_session, student, swim_class, make_enrollment):
    _, profile = student
    e = make_enrollment(profile, swim_class)
    assert svc.is_visible(e, T0 + timedelta(days=365))
    assert svc.visibility_deadline(e) is None
    assert svc.time_remaining(e, T0) is None


def test_cancelled_enrollment_visible_until_24h(db_session, student, swim_class, make_enrollment):
    _, profile = student
    e = make_enrollment(profile, swim_class, status="cancelled", cancelled_at=T0)

    assert svc.visibility_deadline(e) == T0 + timedelta(hours=24)
    assert svc.is_visible(e, T0 + timedelta(hours=23, minutes=59, seconds=59))
    assert not svc.is_visible(e, T0 + timedelta(hours=24))


def test_time_remaining_reports_hours_and_minutes(db_session, student, swim_class, make_enrollment):
    _, profile = student
    e = make_enrollment(profile, swim_class, status="cancelled", cancelled_at=T0)

    left = svc.time_remaining(e, T0 + timedelta(hours=20, minutes=30))
    assert left == {"hours": 3, "minutes": 30, "expired": False}
    assert svc.time_remaining(e, T0 + timedelta(hours=30))["expired"] is True


def test_list_visible_hides_expired_cancellations(db_session, student, swim_class, make_class, make_enrollment):
    _, profile = student
    other = make_class(name="Aquagym")
    third = make_class(name="Perfectionnement")
    active = make_enrollment(profile, swim_class)
    recent = make_enrollment(profile, other, status="cancelled", cancelled_at=T0 + timedelta(hours=10))
    make_enrollment(profile, third, status="cancelled", cancelled_at=T0 - timedelta(hours=30))

    ids = {e.id for e in svc.list_visible_enrollments(profile, now=T0 + timedelta(hours=12))}
    assert ids == {active.id, recent.id}


def test_get_profile_missing_raises(db_session, make_user):
    user, _ = make_user(with_profile=False)
    with pytest.raises(NotFoundError):
        svc.get_profile(user)


# --------------------------
# cancelamento
# --------------------------
def test_cancel_sets_timestamp_and_logs_event(db_session, student, swim_class, make_enrollment):
    _, profile = student
    e = make_enrollment(profile, swim_class)

    svc.cancel_enrollment(e.id, profile, reason="Malade", now=T0)

    e = db_session.get(Enrollment, e.id)
    assert e.status == "cancelled"
    assert e.cancelled_at == T0
    assert e.cancellation_reason == "Malade"
    events = ReservationEvent.query.filter_by(enrollment_id=e.id).all()
    assert [ev.type for ev in events] == ["cancel"]
    assert events[0].actor_id == profile.id


def test_cancel_twice_is_rejected(db_session, student, swim_class, make_enrollment):
    _, profile = student
    e = make_enrollment(profile, swim_class, status="cancelled", cancelled_at=T0)
    with pytest.raises(BusinessRuleError):
        svc.cancel_enrollment(e.id, profile, now=T0 + timedelta(hours=1))


def test_cannot_cancel_someone_elses_enrollment(db_session, student, swim_class, make_user, make_enrollment):
    _, profile = student
    _, intruder = make_user("intrus@test.com")
    e = make_enrollment(profile, swim_class)
    with pytest.raises(NotFoundError):
        svc.cancel_enrollment(e.id, intruder, now=T0)
    assert db_session.get(Enrollment, e.id).status == "active"


# --------------------------
# reativação
# --------------------------
def test_reactivate_within_window(db_session, student, swim_class, make_enrollment):
    _, profile = student
    e = make_enrollment(profile, swim_class, status="cancelled", cancelled_at=T0)

    svc.reactivate_enrollment(e.id, profile, now=T0 + timedelta(hours=5))

    e = db_session.get(Enrollment, e.id)
    assert e.status == "active"
    assert e.cancelled_at is None
    events = ReservationEvent.query.filter_by(enrollment_id=e.id, type="reactivate").all()
    assert len(events) == 1
    assert events[0].actor_id == profile.id
    assert events[0].details["previous_cancelled_at"] == "2024-01-01T00:00:00Z"


def test_reactivate_after_window_is_rejected(db_session, student, swim_class, make_enrollment):
    _, profile = student
    e = make_enrollment(profile, swim_class, status="cancelled", cancelled_at=T0)

    with pytest.raises(BusinessRuleError, match="window"):
        svc.reactivate_enrollment(e.id, profile, now=T0 + timedelta(hours=24))

    e = db_session.get(Enrollment, e.id)
    assert e.status == "cancelled"
    assert e.cancelled_at == T0
    assert ReservationEvent.query.filter_by(enrollment_id=e.id).count() == 0


def test_reactivate_active_enrollment_is_rejected(db_session, student, swim_class, make_enrollment):
    _, profile = student
    e = make_enrollment(profile, swim_class)
    with pytest.raises(BusinessRuleError):
        svc.reactivate_enrollment(e.id, profile, now=T0)


def test_reactivate_unknown_enrollment(db_session, student):
    _, profile = student
    with pytest.raises(NotFoundError):
        svc.reactivate_enrollment("does-not-exist", profile, now=T0)


def test_admin_can_reactivate_any_enrollment(db_session, student, swim_class, make_user, make_enrollment):
    _, profile = student
    _, admin_profile = make_user("admin@test.com", is_admin=True)
    e = make_enrollment(profile, swim_class, status="cancelled", cancelled_at=T0)

    svc.reactivate_enrollment(e.id, admin_profile, is_admin=True, now=T0 + timedelta(hours=1))

    assert db_session.get(Enrollment, e.id).status == "active"
    ev = ReservationEvent.query.filter_by(enrollment_id=e.id, type="reactivate").one()
    assert ev.actor_id == admin_profile.id


def test_reactivate_is_atomic_when_audit_insert_fails(db_session, student, swim_class, make_enrollment, monkeypatch):
    _, profile = student
    e = make_enrollment(profile, swim_class, status="cancelled", cancelled_at=T0)

    def _boom(*a, **k):
        raise SQLAlchemyError("audit insert failed")

    monkeypatch.setattr(svc, "log_reservation_event", _boom)
    with pytest.raises(SQLAlchemyError):
        svc.reactivate_enrollment(e.id, profile, now=T0 + timedelta(hours=1))

    e = db_session.get(Enrollment, e.id)
    assert e.status == "cancelled"
    assert e.cancelled_at == T0


def test_reactivate_conflicting_active_enrollment(db_session, student, swim_class, make_enrollment):
    _, profile = student
    old = make_enrollment(profile, swim_class, status="cancelled", cancelled_at=T0)
    make_enrollment(profile, swim_class)  # já reinscrito na mesma turma

    with pytest.raises(BusinessRuleError, match="already"):
        svc.reactivate_enrollment(old.id, profile, now=T0 + timedelta(hours=1))
    assert db_session.get(Enrollment, old.id).status == "cancelled"
