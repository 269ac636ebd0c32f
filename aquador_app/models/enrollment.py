# aquador_app/models/enrollment.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import uuid
from datetime import datetime
from ..extensions import db

STATUS_PENDING = "pending"
STATUS_ACTIVE = "active"
STATUS_CANCELLED = "cancelled"


class Enrollment(db.Model):
    __tablename__ = "enrollments"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    student_id = db.Column(db.String(36), db.ForeignKey("profiles.id"), index=True, nullable=False)
    class_id = db.Column(db.String(36), db.ForeignKey("classes.id"), index=True, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=STATUS_ACTIVE)      # pending, active, cancelled
    payment_status = db.Column(db.String(20), nullable=False, default="pending")  # pending, paid
    enrollment_date = db.Column(db.DateTime, default=datetime.utcnow)
    cancelled_at = db.Column(db.DateTime, nullable=True, index=True)
    cancellation_reason = db.Column(db.String(255))
    # marcado pela varredura depois de registrar o evento "cleanup"; limpo na reativação
    cleanup_logged_at = db.Column(db.DateTime, nullable=True)

    student = db.relationship("Profile", backref=db.backref("enrollments", lazy="dynamic"))
    swim_class = db.relationship("SwimClass", backref=db.backref("enrollments", lazy="dynamic"))

    __table_args__ = (
        # no máximo uma inscrição ativa por aluno/turma (verify-payment pode chegar duplicado)
        db.Index(
            "uq_enrollments_active_student_class",
            "student_id", "class_id",
            unique=True,
            postgresql_where=db.text("status = 'active'"),
            sqlite_where=db.text("status = 'active'"),
        ),
    )

    def to_dict(self) -> dict:
        from ..utils import isoformat
        return {
            "id": self.id,
            "student_id": self.student_id,
            "class_id": self.class_id,
            "class_name": self.swim_class.name if self.swim_class else None,
            "status": self.status,
            "payment_status": self.payment_status,
            "enrollment_date": isoformat(self.enrollment_date),
            "cancelled_at": isoformat(self.cancelled_at),
        }
