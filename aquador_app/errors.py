# aquador_app/errors.py
# -*- coding: utf-8 -*-
from __future__ import annotations


class ServiceError(Exception):
    """Erro da camada de serviço, já com o status HTTP correspondente."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ServiceError):
    status_code = 400


class BusinessRuleError(ServiceError):
    """Pré-condição de negócio não atendida; a API responde success=false, não erro."""
    status_code = 400


class AuthenticationError(ServiceError):
    status_code = 401


class PermissionDenied(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class PaymentProviderError(ServiceError):
    status_code = 502
