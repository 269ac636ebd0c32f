# aquador_app/models/payment.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import uuid
from datetime import datetime
from ..extensions import db

PAYMENT_PENDING = "pending"
PAYMENT_PAID = "paid"
PAYMENT_CANCELLED = "cancelled"


class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey("profiles.id"), index=True, nullable=False)
    enrollment_id = db.Column(db.String(36), db.ForeignKey("enrollments.id"), index=True, nullable=True)
    # reservas de sessão pagas no balcão (sem Stripe)
    booking_id = db.Column(db.String(36), db.ForeignKey("bookings.id"), index=True, nullable=True)
    amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    currency = db.Column(db.String(8), default="htg")
    payment_method = db.Column(db.String(30), default="card")  # card, cash, transfer
    status = db.Column(db.String(20), nullable=False, default=PAYMENT_PENDING)  # pending, paid, cancelled
    # id da Checkout Session do Stripe
    transaction_id = db.Column(db.String(120), unique=True, index=True)
    notes = db.Column(db.Text)
    paid_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    profile = db.relationship("Profile", backref=db.backref("payments", lazy="dynamic"))
    enrollment = db.relationship("Enrollment", backref=db.backref("payments", lazy="dynamic"))
    booking = db.relationship("Booking", backref=db.backref("payments", lazy="dynamic"))

    def to_dict(self) -> dict:
        from ..utils import isoformat
        return {
            "id": self.id,
            "user_id": self.user_id,
            "enrollment_id": self.enrollment_id,
            "booking_id": self.booking_id,
            "amount": float(self.amount or 0),
            "currency": self.currency,
            "payment_method": self.payment_method,
            "status": self.status,
            "transaction_id": self.transaction_id,
            "paid_at": isoformat(self.paid_at),
            "created_at": isoformat(self.created_at),
        }
