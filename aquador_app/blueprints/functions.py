# aquador_app/blueprints/functions.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import hmac

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import token_required
from ..errors import ServiceError
from ..services import payment_service
from ..services.cleanup_service import run_cleanup
from ..utils import isoformat, utcnow

bp = Blueprint("functions", __name__, url_prefix="/functions")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}


@bp.after_request
def _cors(response):
    response.headers.update(CORS_HEADERS)
    return response


def _internal_error(exc: Exception) -> str:
    # detalhe cru só em debug
    return str(exc) if current_app.debug else "Internal server error"


# -------- cleanup-cancelled-enrollments --------
@bp.route("/cleanup-cancelled-enrollments", methods=["GET", "POST", "OPTIONS"])
def cleanup_cancelled_enrollments():
    if request.method == "OPTIONS":
        return "", 200

    secret = current_app.config.get("CLEANUP_FUNCTION_SECRET")
    if secret and not hmac.compare_digest(request.headers.get("X-Cleanup-Secret", ""), secret):
        return jsonify(success=False, error="Forbidden", timestamp=isoformat(utcnow())), 403

    try:
        result = run_cleanup()
    except Exception as exc:
        current_app.logger.exception("Cleanup error")
        return jsonify(success=False, error=_internal_error(exc), timestamp=isoformat(utcnow())), 500
    return jsonify(result.to_dict()), 200


# -------- verify-payment --------
@bp.route("/verify-payment", methods=["POST", "OPTIONS"])
def verify_payment():
    if request.method == "OPTIONS":
        return "", 200
    return _verify_payment()


@token_required
def _verify_payment():
    body = request.get_json(silent=True) or {}
    try:
        result = payment_service.verify_checkout_session(g.current_user, body.get("sessionId"))
    except ServiceError as exc:
        current_app.logger.warning("Payment verification error: %s", exc.message)
        return jsonify(success=False, error=exc.message), exc.status_code
    except Exception as exc:
        current_app.logger.exception("Payment verification error")
        return jsonify(error=_internal_error(exc)), 500

    if not result.paid:
        return jsonify(success=False, message=result.message), 400

    return jsonify(
        success=True,
        message=result.message,
        paymentId=result.payment.id if result.payment else None,
        enrollmentId=result.enrollment.id if result.enrollment else None,
    ), 200
