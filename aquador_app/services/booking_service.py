# aquador_app/services/booking_service.py
# -*- coding: utf-8 -*-
"""
Reserva de sessões do calendário com pagamento no balcão.

O aluno reserva (booking + payment 'pending'); o admin aprova (booking
confirmado, pagamento 'paid') ou recusa (ambos cancelados). Cada passo grava
os eventos de pagamento na mesma transação.
"""
from __future__ import annotations
from datetime import datetime
from decimal import Decimal

from flask import current_app

from ..errors import BusinessRuleError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Booking, ClassSession, Payment, Profile
from ..models.booking import (APPROVAL_APPROVED, APPROVAL_PENDING, APPROVAL_REJECTED,
                              BOOKING_CANCELLED, BOOKING_CONFIRMED, BOOKING_PENDING)
from ..models.payment import PAYMENT_CANCELLED, PAYMENT_PAID, PAYMENT_PENDING
from ..utils import utcnow
from .audit import log_payment_event

PAYMENT_METHODS = ("cash", "transfer", "moncash")


def _open_bookings(session_id: str):
    return Booking.query.filter(Booking.class_session_id == session_id,
                                Booking.status != BOOKING_CANCELLED)


def book_session(profile: Profile, session_id: str, *, payment_method: str = "cash",
                 notes: str | None = None, now: datetime | None = None) -> Booking:
    now = now or utcnow()
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

    session = (ClassSession.query
               .filter_by(id=session_id)
               .with_for_update()
               .first())
    if session is None:
        raise NotFoundError("Session not found")
    if session.status != "scheduled" or session.session_date <= now:
        db.session.rollback()
        raise BusinessRuleError("Session is not open for booking")
    if _open_bookings(session_id).filter(Booking.user_id == profile.id).first():
        db.session.rollback()
        raise BusinessRuleError("Session already booked")
    if _open_bookings(session_id).count() >= session.max_participants:
        db.session.rollback()
        raise BusinessRuleError("Session is full")

    price = Decimal(session.swim_class.price or 0) if session.swim_class else Decimal("0")
    try:
        booking = Booking(
            user_id=profile.id,
            class_session_id=session.id,
            status=BOOKING_PENDING,
            enrollment_status=APPROVAL_PENDING,
            notes=(notes or "").strip() or None,
            total_amount=price,
            booking_date=now,
        )
        db.session.add(booking)
        db.session.flush()
        payment = Payment(
            user_id=profile.id,
            booking_id=booking.id,
            amount=price,
            currency=current_app.config.get("STRIPE_CURRENCY", "htg"),
            payment_method=payment_method,
            status=PAYMENT_PENDING,
        )
        db.session.add(payment)
        db.session.flush()
        log_payment_event(payment.id, "created", profile.id,
                          {"booking_id": booking.id, "class_session_id": session.id}, occurred_at=now)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Booking %s created by %s for session %s", booking.id, profile.id, session.id)
    return booking


def _load_pending(booking_id: str) -> Booking:
    booking = (Booking.query
               .filter_by(id=booking_id)
               .with_for_update()
               .populate_existing()
               .first())
    if booking is None:
        raise NotFoundError("Booking not found")
    if booking.enrollment_status != APPROVAL_PENDING or booking.status == BOOKING_CANCELLED:
        db.session.rollback()
        raise BusinessRuleError("Booking is not pending")
    return booking


def approve_booking(booking_id: str, actor_id: str | None, now: datetime | None = None) -> Booking:
    """Confirma a reserva e marca os pagamentos dela como pagos (um commit)."""
    now = now or utcnow()
    booking = _load_pending(booking_id)
    try:
        booking.enrollment_status = APPROVAL_APPROVED
        booking.status = BOOKING_CONFIRMED
        for payment in booking.payments.filter(Payment.status == PAYMENT_PENDING).all():
            payment.status = PAYMENT_PAID
            payment.paid_at = now
            log_payment_event(payment.id, "paid", actor_id,
                              {"booking_id": booking.id, "approved_by": actor_id}, occurred_at=now)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    current_app.logger.info("Booking %s approved by %s", booking.id, actor_id)
    return booking


def reject_booking(booking_id: str, actor_id: str | None, reason: str | None = None,
                   now: datetime | None = None) -> Booking:
    now = now or utcnow()
    booking = _load_pending(booking_id)
    try:
        booking.enrollment_status = APPROVAL_REJECTED
        booking.status = BOOKING_CANCELLED
        _cancel_pending_payments(booking, actor_id, reason or "rejected", now)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    current_app.logger.info("Booking %s rejected by %s", booking.id, actor_id)
    return booking


def cancel_booking(booking_id: str, profile: Profile, now: datetime | None = None) -> Booking:
    """Aluno desiste de uma reserva ainda não aprovada."""
    now = now or utcnow()
    booking = _load_pending(booking_id)
    if booking.user_id != profile.id:
        db.session.rollback()
        raise NotFoundError("Booking not found")
    try:
        booking.status = BOOKING_CANCELLED
        _cancel_pending_payments(booking, profile.id, "cancelled_by_student", now)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    current_app.logger.info("Booking %s cancelled by %s", booking.id, profile.id)
    return booking


def _cancel_pending_payments(booking: Booking, actor_id: str | None, reason: str, now: datetime) -> None:
    for payment in booking.payments.filter(Payment.status == PAYMENT_PENDING).all():
        payment.status = PAYMENT_CANCELLED
        log_payment_event(payment.id, "cancelled", actor_id,
                          {"booking_id": booking.id, "reason": reason}, occurred_at=now)


def list_bookings(profile: Profile | None = None, enrollment_status: str | None = None) -> list[Booking]:
    q = Booking.query
    if profile is not None:
        q = q.filter(Booking.user_id == profile.id)
    if enrollment_status:
        q = q.filter(Booking.enrollment_status == enrollment_status.lower())
    return q.order_by(Booking.created_at.desc()).all()
