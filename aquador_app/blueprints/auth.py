# aquador_app/blueprints/auth.py
# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import token_required
from ..extensions import db
from ..models import Profile, User
from ..security import create_access_token

bp = Blueprint("auth", __name__, url_prefix="/auth")


def _token_response(user: User, status: int = 200):
    token = create_access_token(subject={"sub": str(user.id), "email": user.email})
    return jsonify(
        access_token=token,
        token_type="bearer",
        expires_in=current_app.config["ACCESS_TOKEN_EXPIRE_MINUTES"] * 60,
    ), status


@bp.route("/token", methods=["POST"])
def token():
    body = request.get_json(silent=True) or {}
    email = (body.get("email") or "").strip().lower()
    pwd = body.get("password") or ""

    u = User.query.filter_by(email=email).first()
    if not u or not u.active or not u.check_password(pwd):
        return jsonify(success=False, error="Invalid credentials"), 401
    return _token_response(u)


@bp.route("/register", methods=["POST"])
def register():
    body = request.get_json(silent=True) or {}
    email = (body.get("email") or "").strip().lower()
    pwd = body.get("password") or ""
    full_name = (body.get("fullName") or body.get("full_name") or "").strip()

    if not email or not pwd:
        return jsonify(success=False, error="Email and password are required"), 400
    if User.query.filter_by(email=email).first():
        return jsonify(success=False, error="Email already registered"), 409

    u = User(email=email)
    u.set_password(pwd)
    db.session.add(u)
    db.session.flush()
    db.session.add(Profile(user_id=u.id, email=email, full_name=full_name or None,
                           phone=body.get("phone"), role="student"))
    db.session.commit()
    current_app.logger.info("User %s registered", u.id)
    return _token_response(u, 201)


@bp.route("/me")
@token_required
def me():
    u = g.current_user
    p = u.profile
    return jsonify(
        id=u.id,
        email=u.email,
        is_admin=bool(u.is_admin),
        profile=None if not p else {
            "id": p.id, "full_name": p.full_name, "role": p.role, "phone": p.phone,
        },
    )
