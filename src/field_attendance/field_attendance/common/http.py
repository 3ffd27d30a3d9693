from __future__ import annotations

import logging
from typing import Any, Dict

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from ..core.exceptions import DomainError, TooManyRequests, ValidationError

logger = logging.getLogger(__name__)


def json_body() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def client_address() -> str:
    # X-Forwarded-For is only honoured through ProxyFix (TRUSTED_PROXY_HOPS).
    return request.remote_addr or "unknown"


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        response = jsonify(exc.to_dict())
        response.status_code = exc.status_code
        if isinstance(exc, TooManyRequests) and exc.details.get("retry_after"):
            response.headers["Retry-After"] = str(exc.details["retry_after"])
        return response

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        response = jsonify({"error": exc.name, "message": exc.description, "code": exc.name.upper().replace(" ", "_")})
        response.status_code = exc.code or 500
        return response

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        logger.error("Unhandled error on %s %s", request.method, request.path, exc_info=exc)
        response = jsonify({"error": "InternalServerError", "message": "Internal server error", "code": "INTERNAL_ERROR"})
        response.status_code = 500
        return response
