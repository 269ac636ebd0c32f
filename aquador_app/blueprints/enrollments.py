# aquador_app/blueprints/enrollments.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from flask import Blueprint, g, jsonify, request

from ..decorators import token_required
from ..errors import BusinessRuleError
from ..services import enrollment_service as svc
from ..utils import utcnow

bp = Blueprint("enrollments", __name__)


@bp.route("/enrollments")
@token_required
def my_enrollments():
    """Inscrições do aluno: ativas + canceladas ainda dentro da janela de 24h."""
    profile = svc.get_profile(g.current_user)
    now = utcnow()
    items = [svc.serialize(e, now) for e in svc.list_visible_enrollments(profile, now)]
    return jsonify(success=True, enrollments=items)


@bp.route("/enrollments/<enrollment_id>/cancel", methods=["POST"])
@token_required
def cancel(enrollment_id: str):
    body = request.get_json(silent=True) or {}
    profile = svc.get_profile(g.current_user)
    try:
        enrollment = svc.cancel_enrollment(
            enrollment_id, profile,
            is_admin=bool(g.current_user.is_admin),
            reason=body.get("reason"),
        )
    except BusinessRuleError as exc:
        return jsonify(success=False, message=exc.message), 400
    return jsonify(success=True, message="Enrollment cancelled", enrollment=svc.serialize(enrollment))


@bp.route("/rpc/reactivate_enrollment_with_event", methods=["POST"])
@token_required
def reactivate_enrollment_with_event():
    body = request.get_json(silent=True) or {}
    enrollment_id = body.get("enrollmentId") or body.get("p_enrollment_id")
    if not enrollment_id:
        return jsonify(success=False, message="enrollmentId is required"), 400

    profile = svc.get_profile(g.current_user)
    try:
        enrollment = svc.reactivate_enrollment(
            enrollment_id, profile, is_admin=bool(g.current_user.is_admin),
        )
    except BusinessRuleError as exc:
        return jsonify(success=False, message=exc.message), 400
    return jsonify(success=True, message="Enrollment reactivated", enrollment=svc.serialize(enrollment))
