# tests/test_admin_routes.py
# -*- coding: utf-8 -*-
from decimal import Decimal

import pytest

from aquador_app.models import Enrollment, Payment, PaymentEvent
from aquador_app.utils import utcnow


@pytest.fixture
def admin(make_user):
    return make_user("admin@test.com", is_admin=True)


def test_admin_lists_all_enrollments_with_status_filter(client, db_session, admin, make_user, make_class,
                                                        make_enrollment, auth_headers):
    _, p1 = make_user()
    _, p2 = make_user()
    make_enrollment(p1, make_class())
    cancelled = make_enrollment(p2, make_class(), status="cancelled", cancelled_at=utcnow())

    r = client.get("/admin/enrollments", headers=auth_headers(admin[0]))
    assert r.status_code == 200
    assert len(r.get_json()["enrollments"]) == 2

    r = client.get("/admin/enrollments?status=cancelled", headers=auth_headers(admin[0]))
    assert [e["id"] for e in r.get_json()["enrollments"]] == [cancelled.id]


def test_admin_cancels_student_enrollment(client, db_session, admin, make_user, make_class,
                                         make_enrollment, auth_headers):
    _, profile = make_user()
    e = make_enrollment(profile, make_class())

    r = client.post(f"/admin/enrollments/{e.id}/cancel", headers=auth_headers(admin[0]))

    assert r.status_code == 200
    e = db_session.get(Enrollment, e.id)
    assert e.status == "cancelled"
    assert e.cancellation_reason == "Annulé par l'administrateur"


def test_admin_lists_payments(client, db_session, admin, make_user, auth_headers):
    _, profile = make_user()
    db_session.add_all([
        Payment(user_id=profile.id, amount=Decimal("1500.00"), status="paid", transaction_id="cs_a"),
        Payment(user_id=profile.id, amount=Decimal("900.00"), status="pending", transaction_id="cs_b"),
    ])
    db_session.commit()

    r = client.get("/admin/payments?status=paid", headers=auth_headers(admin[0]))

    assert r.status_code == 200
    assert [p["transaction_id"] for p in r.get_json()["payments"]] == ["cs_a"]


def test_admin_events_by_kind(client, db_session, admin, auth_headers):
    db_session.add(PaymentEvent(payment_id="pay-1", type="paid", occurred_at=utcnow()))
    db_session.commit()

    r = client.get("/admin/events?kind=payment&payment_id=pay-1", headers=auth_headers(admin[0]))
    assert r.status_code == 200
    assert [e["type"] for e in r.get_json()["events"]] == ["paid"]

    r = client.get("/admin/events?kind=other", headers=auth_headers(admin[0]))
    assert r.status_code == 400


def test_admin_without_profile_can_cancel(client, db_session, make_user, make_class, make_enrollment,
                                          auth_headers):
    from aquador_app.models import ReservationEvent

    admin_user, _ = make_user("ops@test.com", is_admin=True, with_profile=False)
    _, profile = make_user()
    e = make_enrollment(profile, make_class())

    r = client.post(f"/admin/enrollments/{e.id}/cancel", headers=auth_headers(admin_user))

    assert r.status_code == 200
    assert db_session.get(Enrollment, e.id).status == "cancelled"
    ev = ReservationEvent.query.filter_by(enrollment_id=e.id, type="cancel").one()
    assert ev.actor_id is None
