# aquador_app/decorators.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from functools import wraps
from flask import g, request, jsonify

from .errors import AuthenticationError
from .extensions import db
from .models import User
from .security import bearer_token, decode_access_token


def _authenticate() -> User:
    payload = decode_access_token(bearer_token(request.headers.get("Authorization")))
    sub = str(payload.get("sub") or "")
    user = db.session.get(User, int(sub)) if sub.isdigit() else None
    if not user or not user.active:
        raise AuthenticationError("User not authenticated")
    return user


def token_required(view_func):
    @wraps(view_func)
    def wrapper(*args, **kwargs):
        try:
            g.current_user = _authenticate()
        except AuthenticationError as exc:
            return jsonify(success=False, error=exc.message), 401
        return view_func(*args, **kwargs)
    return wrapper


def admin_required(view_func):
    @wraps(view_func)
    def wrapper(*args, **kwargs):
        try:
            user = _authenticate()
        except AuthenticationError as exc:
            return jsonify(success=False, error=exc.message), 401
        if not user.is_admin:
            return jsonify(success=False, error="Admin access required"), 403
        g.current_user = user
        return view_func(*args, **kwargs)
    return wrapper
