# aquador_app/blueprints/payments.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from flask import Blueprint, g, jsonify, request

from ..decorators import token_required
from ..services import payment_service
from ..services.enrollment_service import get_profile

bp = Blueprint("payments", __name__, url_prefix="/payments")


@bp.route("", methods=["GET"])
@token_required
def my_payments():
    profile = get_profile(g.current_user)
    items = payment_service.list_payments(profile, request.args.get("status"))
    return jsonify(success=True, payments=[p.to_dict() for p in items])


@bp.route("/checkout", methods=["POST"])
@token_required
def checkout():
    """Cria a Stripe Checkout Session para a turma e devolve a URL de pagamento."""
    body = request.get_json(silent=True) or {}
    profile = get_profile(g.current_user)
    payment, url = payment_service.create_checkout(profile, body.get("classId"))
    return jsonify(success=True, url=url, sessionId=payment.transaction_id, paymentId=payment.id), 201


# -------- Stripe Webhook --------
@bp.route("/webhook", methods=["POST"])  # configure endpoint no Dashboard da Stripe
def stripe_webhook():
    typ = payment_service.handle_webhook(request.data, request.headers.get("Stripe-Signature", ""))
    return jsonify(received=True, type=typ)
