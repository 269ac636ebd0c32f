# aquador_app/blueprints/calendar.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import timedelta

from flask import Blueprint, g, jsonify, request
from sqlalchemy import func

from ..decorators import token_required
from ..errors import BusinessRuleError, ValidationError
from ..extensions import db
from ..models import Booking, ClassSession, Enrollment, SwimClass
from ..models.booking import BOOKING_CANCELLED
from ..models.enrollment import STATUS_ACTIVE
from ..services import booking_service
from ..services.enrollment_service import get_profile
from ..utils import isoformat, parse_datetime, utcnow

bp = Blueprint("calendar", __name__, url_prefix="/calendar")


@bp.route("/sessions")
def sessions():
    """Sessões entre ?start= e ?end= (ISO 8601). Padrão: próximos 30 dias."""
    try:
        start = parse_datetime(request.args.get("start")) or utcnow()
        end = parse_datetime(request.args.get("end")) or start + timedelta(days=30)
    except ValueError as exc:
        raise ValidationError("Invalid date range") from exc
    if end < start:
        raise ValidationError("Invalid date range")

    active_counts = (db.session.query(Enrollment.class_id, func.count(Enrollment.id).label("n"))
                     .filter(Enrollment.status == STATUS_ACTIVE)
                     .group_by(Enrollment.class_id)
                     .subquery())
    booked_counts = (db.session.query(Booking.class_session_id, func.count(Booking.id).label("n"))
                     .filter(Booking.status != BOOKING_CANCELLED)
                     .group_by(Booking.class_session_id)
                     .subquery())
    rows = (db.session.query(ClassSession, SwimClass.name, func.coalesce(active_counts.c.n, 0),
                             func.coalesce(booked_counts.c.n, 0))
            .join(SwimClass, SwimClass.id == ClassSession.class_id)
            .outerjoin(active_counts, active_counts.c.class_id == ClassSession.class_id)
            .outerjoin(booked_counts, booked_counts.c.class_session_id == ClassSession.id)
            .filter(ClassSession.session_date >= start, ClassSession.session_date < end)
            .order_by(ClassSession.session_date.asc())
            .all())

    return jsonify(success=True, sessions=[
        {
            "id": s.id,
            "class_id": s.class_id,
            "class_name": name,
            "session_date": isoformat(s.session_date),
            "max_participants": s.max_participants,
            "status": s.status,
            "enrolled": int(enrolled),
            "booked": int(booked),
        }
        for s, name, enrolled, booked in rows
    ])


@bp.route("/sessions/<session_id>/book", methods=["POST"])
@token_required
def book(session_id: str):
    body = request.get_json(silent=True) or {}
    profile = get_profile(g.current_user)
    try:
        booking = booking_service.book_session(
            profile, session_id,
            payment_method=(body.get("paymentMethod") or "cash").lower(),
            notes=body.get("notes"),
        )
    except BusinessRuleError as exc:
        return jsonify(success=False, message=exc.message), 400
    return jsonify(success=True, message="Booking pending approval", booking=booking.to_dict()), 201


@bp.route("/bookings")
@token_required
def my_bookings():
    profile = get_profile(g.current_user)
    items = booking_service.list_bookings(profile)
    return jsonify(success=True, bookings=[b.to_dict() for b in items])


@bp.route("/bookings/<booking_id>/cancel", methods=["POST"])
@token_required
def cancel_booking(booking_id: str):
    profile = get_profile(g.current_user)
    try:
        booking = booking_service.cancel_booking(booking_id, profile)
    except BusinessRuleError as exc:
        return jsonify(success=False, message=exc.message), 400
    return jsonify(success=True, booking=booking.to_dict())
