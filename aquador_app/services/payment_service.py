# aquador_app/services/payment_service.py
# -*- coding: utf-8 -*-
"""
Checkout Stripe, verificação da sessão paga e criação da inscrição.

A confirmação (pagamento -> paid + inscrição ativa) roda numa única transação
e é idempotente pela ``transaction_id`` (id da Checkout Session): chamar de
novo, pelo cliente ou pelo webhook, não duplica nada.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

import stripe
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import (NotFoundError, PaymentProviderError, PermissionDenied,
                      ValidationError)
from ..extensions import db
from ..models import Enrollment, Payment, Profile, SwimClass, User
from ..models.enrollment import STATUS_ACTIVE
from ..models.payment import PAYMENT_PAID, PAYMENT_PENDING
from ..utils import utcnow
from .audit import log_payment_event, log_reservation_event
from .enrollment_service import get_profile


def _stripe():
    stripe.api_key = current_app.config["STRIPE_SECRET_KEY"]
    return stripe


def _field(obj, key, default=None):
    """Lê campo de StripeObject ou dict (os testes usam dicts)."""
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(key, default)
    return getattr(obj, key, default)


@dataclass
class VerificationResult:
    paid: bool
    payment: Payment | None = None
    enrollment: Enrollment | None = None
    enrollment_created: bool = False
    newly_paid: bool = False

    @property
    def message(self) -> str:
        if not self.paid:
            return "Payment not completed"
        if self.enrollment_created:
            return "Payment verified and enrollment created"
        if not self.newly_paid:
            return "Payment already verified"
        return "Payment verified"


def retrieve_checkout_session(session_id: str):
    s = _stripe()
    try:
        return s.checkout.Session.retrieve(session_id)
    except stripe.StripeError as exc:
        current_app.logger.exception("Stripe session retrieve failed for %s", session_id)
        raise PaymentProviderError(f"Unable to retrieve payment session: {exc}") from exc


def _session_amount(session) -> Decimal:
    total = _field(session, "amount_total")
    if total is None:
        return Decimal("0")
    return (Decimal(int(total)) / 100).quantize(Decimal("0.01"))


def _apply_paid_session(session, profile: Profile, now: datetime) -> VerificationResult:
    session_id = _field(session, "id")
    metadata = _field(session, "metadata") or {}
    class_id = _field(metadata, "classId")

    payment = (Payment.query
               .filter_by(transaction_id=session_id)
               .with_for_update()
               .populate_existing()
               .first())
    if payment is not None and payment.user_id != profile.id:
        raise PermissionDenied("Payment session belongs to another user")

    if payment is None:
        # sessão criada fora do /payments/checkout: registra agora
        payment = Payment(
            user_id=profile.id,
            transaction_id=session_id,
            amount=_session_amount(session),
            currency=_field(session, "currency") or current_app.config.get("STRIPE_CURRENCY", "htg"),
            payment_method="card",
            status=PAYMENT_PENDING,
        )
        db.session.add(payment)
        db.session.flush()

    newly_paid = payment.status != PAYMENT_PAID
    if newly_paid:
        payment.status = PAYMENT_PAID
        payment.paid_at = now

    enrollment, created = None, False
    if payment.enrollment_id:
        # sessão já confirmada: vale a inscrição ligada a ela, mesmo que tenha sido cancelada depois
        enrollment = db.session.get(Enrollment, payment.enrollment_id)
    elif class_id and newly_paid:
        enrollment = (Enrollment.query
                      .filter_by(student_id=profile.id, class_id=class_id, status=STATUS_ACTIVE)
                      .first())
        if enrollment is None:
            enrollment = Enrollment(
                student_id=profile.id,
                class_id=class_id,
                status=STATUS_ACTIVE,
                payment_status=PAYMENT_PAID,
                enrollment_date=now,
            )
            db.session.add(enrollment)
            db.session.flush()
            created = True
            log_reservation_event(
                enrollment.id, "enrollment_created", profile.id,
                {"payment_id": payment.id, "transaction_id": session_id},
                occurred_at=now,
            )
        payment.enrollment_id = enrollment.id

    if newly_paid:
        log_payment_event(
            payment.id, "paid", profile.id,
            {"transaction_id": session_id, "enrollment_id": enrollment.id if enrollment else None},
            occurred_at=now,
        )

    return VerificationResult(paid=True, payment=payment, enrollment=enrollment,
                              enrollment_created=created, newly_paid=newly_paid)


def confirm_paid_session(session, profile: Profile, now: datetime | None = None) -> VerificationResult:
    """Marca o pagamento como pago e cria a inscrição numa única transação."""
    now = now or utcnow()
    session_id = _field(session, "id")
    for attempt in (1, 2):
        try:
            result = _apply_paid_session(session, profile, now)
            db.session.commit()
        except IntegrityError as exc:
            # pode ser confirmação concorrente (a segunda passada encontra as linhas) ou FK inválida
            db.session.rollback()
            if attempt == 2:
                current_app.logger.exception("Could not confirm session %s", session_id)
                raise
            current_app.logger.warning("Integrity error confirming session %s, retrying once: %s",
                                       session_id, exc.orig)
            continue
        except Exception:
            db.session.rollback()
            raise
        current_app.logger.info(
            "Session %s confirmed for profile %s (newly_paid=%s, enrollment_created=%s)",
            session_id, profile.id, result.newly_paid, result.enrollment_created,
        )
        return result


def verify_checkout_session(user: User, session_id: str | None,
                            now: datetime | None = None) -> VerificationResult:
    if not session_id:
        raise ValidationError("Session ID is required")

    session = retrieve_checkout_session(session_id)
    if _field(session, "payment_status") != "paid":
        current_app.logger.info("Session %s not paid yet (%s)", session_id, _field(session, "payment_status"))
        return VerificationResult(paid=False)

    profile = get_profile(user)
    return confirm_paid_session(session, profile, now)


def create_checkout(profile: Profile, class_id: str | None) -> tuple[Payment, str]:
    """Cria a Checkout Session (modo pagamento) e o registro 'pending' correspondente."""
    if not class_id:
        raise ValidationError("Class ID is required")
    swim_class = db.session.get(SwimClass, class_id)
    if not swim_class or not swim_class.is_active:
        raise NotFoundError("Class not found")

    currency = current_app.config.get("STRIPE_CURRENCY", "htg")
    price = Decimal(swim_class.price or 0)
    s = _stripe()
    try:
        sess = s.checkout.Session.create(
            mode="payment",
            customer_email=profile.email,
            line_items=[{
                "price_data": {
                    "currency": currency,
                    "product_data": {"name": swim_class.name},
                    "unit_amount": int(price * 100),
                },
                "quantity": 1,
            }],
            metadata={"classId": swim_class.id, "profileId": profile.id},
            success_url=current_app.config["STRIPE_SUCCESS_URL"],
            cancel_url=current_app.config["STRIPE_CANCEL_URL"],
        )
    except stripe.StripeError as exc:
        current_app.logger.exception("Stripe checkout creation failed for class %s", class_id)
        raise PaymentProviderError(f"Unable to create payment session: {exc}") from exc

    session_id = _field(sess, "id")
    try:
        payment = Payment(
            user_id=profile.id,
            amount=price,
            currency=currency,
            payment_method="card",
            status=PAYMENT_PENDING,
            transaction_id=session_id,
        )
        db.session.add(payment)
        db.session.flush()
        log_payment_event(payment.id, "created", profile.id,
                          {"transaction_id": session_id, "class_id": swim_class.id})
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Checkout %s created for profile %s / class %s", session_id, profile.id, class_id)
    return payment, _field(sess, "url")


def handle_webhook(payload: bytes, signature: str) -> str:
    """Processa o webhook do Stripe; devolve o tipo do evento recebido."""
    s = _stripe()
    secret = current_app.config["STRIPE_WEBHOOK_SECRET"]
    try:
        event = s.Webhook.construct_event(payload, signature, secret)
    except (ValueError, stripe.SignatureVerificationError) as exc:
        current_app.logger.exception("Webhook signature error")
        raise ValidationError("Invalid webhook signature") from exc

    typ = _field(event, "type")
    data = _field(_field(event, "data"), "object")
    if typ in ("checkout.session.completed", "checkout.session.async_payment_succeeded"):
        if _field(data, "payment_status") != "paid":
            return typ
        profile_id = _field(_field(data, "metadata") or {}, "profileId")
        profile = db.session.get(Profile, profile_id) if profile_id else None
        if profile is None:
            current_app.logger.warning("Webhook %s: profile %s not found", _field(data, "id"), profile_id)
            return typ
        try:
            confirm_paid_session(data, profile)
        except PermissionDenied:
            # webhook sempre responde 200 aqui
            current_app.logger.warning("Webhook %s: payment does not belong to profile %s",
                                       _field(data, "id"), profile_id)
    return typ


def list_payments(profile: Profile | None = None, status: str | None = None):
    q = Payment.query
    if profile is not None:
        q = q.filter(Payment.user_id == profile.id)
    if status:
        q = q.filter(Payment.status == status.lower())
    return q.order_by(Payment.created_at.desc()).all()
