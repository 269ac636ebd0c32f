# aquador_app/blueprints/admin.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from flask import Blueprint, g, jsonify, request

from ..decorators import admin_required
from ..errors import BusinessRuleError
from ..models import Enrollment
from ..services import booking_service, enrollment_service, payment_service
from ..services.audit import list_events
from ..utils import utcnow

bp = Blueprint("admin", __name__, url_prefix="/admin")


@bp.route("/enrollments")
@admin_required
def enrollments():
    q = Enrollment.query
    status = request.args.get("status")
    if status:
        q = q.filter(Enrollment.status == status.lower())
    now = utcnow()
    rows = q.order_by(Enrollment.enrollment_date.desc()).limit(500).all()
    return jsonify(success=True, enrollments=[enrollment_service.serialize(e, now) for e in rows])


@bp.route("/enrollments/<enrollment_id>/cancel", methods=["POST"])
@admin_required
def cancel_enrollment(enrollment_id: str):
    body = request.get_json(silent=True) or {}
    # admin sem profile é aceito: o evento fica com actor_id nulo
    actor = g.current_user.profile
    try:
        enrollment = enrollment_service.cancel_enrollment(
            enrollment_id, actor, is_admin=True, reason=body.get("reason") or "Annulé par l'administrateur",
        )
    except BusinessRuleError as exc:
        return jsonify(success=False, message=exc.message), 400
    return jsonify(success=True, enrollment=enrollment_service.serialize(enrollment))


@bp.route("/payments")
@admin_required
def payments():
    items = payment_service.list_payments(status=request.args.get("status"))
    return jsonify(success=True, payments=[p.to_dict() for p in items])


@bp.route("/events")
@admin_required
def events():
    kind = (request.args.get("kind") or "reservation").lower()
    if kind not in ("reservation", "payment"):
        return jsonify(success=False, error="kind must be 'reservation' or 'payment'"), 400
    subject = request.args.get("enrollment_id") or request.args.get("payment_id")
    return jsonify(success=True, events=[e.to_dict() for e in list_events(kind, subject)])


# -------- reservas pendentes (pagamento no balcão) --------
@bp.route("/bookings")
@admin_required
def bookings():
    status = request.args.get("status", "pending")
    items = booking_service.list_bookings(enrollment_status=status if status != "all" else None)
    return jsonify(success=True, bookings=[b.to_dict() for b in items])


def _actor_id():
    p = g.current_user.profile
    return p.id if p else None


@bp.route("/bookings/<booking_id>/approve", methods=["POST"])
@admin_required
def approve_booking(booking_id: str):
    try:
        booking = booking_service.approve_booking(booking_id, _actor_id())
    except BusinessRuleError as exc:
        return jsonify(success=False, message=exc.message), 400
    return jsonify(success=True, message="Booking approved", booking=booking.to_dict())


@bp.route("/bookings/<booking_id>/reject", methods=["POST"])
@admin_required
def reject_booking(booking_id: str):
    body = request.get_json(silent=True) or {}
    try:
        booking = booking_service.reject_booking(booking_id, _actor_id(), body.get("reason"))
    except BusinessRuleError as exc:
        return jsonify(success=False, message=exc.message), 400
    return jsonify(success=True, message="Booking rejected", booking=booking.to_dict())
