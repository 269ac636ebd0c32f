# aquador_app/security.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from flask import current_app
from jose import JWTError, jwt

from .errors import AuthenticationError


def create_access_token(*, subject: Dict, expires_minutes: Optional[int] = None) -> str:
    if expires_minutes is None:
        expires_minutes = current_app.config["ACCESS_TOKEN_EXPIRE_MINUTES"]

    to_encode = subject.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(
        to_encode,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config["JWT_ALGORITHM"],
    )


def decode_access_token(token: str) -> Dict:
    try:
        return jwt.decode(
            token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
        )
    except JWTError as exc:
        raise AuthenticationError("Invalid or expired token") from exc


def bearer_token(header_value: str | None) -> str:
    """Extrai o token de 'Authorization: Bearer <token>'."""
    if not header_value:
        raise AuthenticationError("User not authenticated")
    scheme, _, token = header_value.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("User not authenticated")
    return token.strip()
