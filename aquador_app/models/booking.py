# aquador_app/models/booking.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import uuid
from datetime import datetime
from ..extensions import db

BOOKING_PENDING = "pending"
BOOKING_CONFIRMED = "confirmed"
BOOKING_CANCELLED = "cancelled"

APPROVAL_PENDING = "pending"
APPROVAL_APPROVED = "approved"
APPROVAL_REJECTED = "rejected"


class Booking(db.Model):
    """Reserva de uma sessão do calendário; pagamento em espécie/transferência validado pelo admin."""
    __tablename__ = "bookings"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey("profiles.id"), index=True, nullable=False)
    class_session_id = db.Column(db.String(36), db.ForeignKey("class_sessions.id"), index=True, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=BOOKING_PENDING)               # pending, confirmed, cancelled
    enrollment_status = db.Column(db.String(20), nullable=False, default=APPROVAL_PENDING)   # pending, approved, rejected
    notes = db.Column(db.Text)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    booking_date = db.Column(db.DateTime, default=datetime.utcnow)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    profile = db.relationship("Profile", backref=db.backref("bookings", lazy="dynamic"))
    session = db.relationship("ClassSession", backref=db.backref("bookings", lazy="dynamic"))

    def to_dict(self) -> dict:
        from ..utils import isoformat
        s = self.session
        return {
            "id": self.id,
            "user_id": self.user_id,
            "class_session_id": self.class_session_id,
            "class_name": s.swim_class.name if s and s.swim_class else None,
            "session_date": isoformat(s.session_date) if s else None,
            "status": self.status,
            "enrollment_status": self.enrollment_status,
            "notes": self.notes,
            "total_amount": float(self.total_amount or 0),
            "booking_date": isoformat(self.booking_date),
        }
