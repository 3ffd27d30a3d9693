from __future__ import annotations

from flask import Flask, g, jsonify, request

from ..common.http import client_address, json_body
from ..core.enums import InvalidationReason
from ..core.exceptions import NotFoundError
from ..container import Container
from ..sessions.model import SessionMeta


def _session_meta(payload: dict) -> SessionMeta:
    return SessionMeta(
        device_fingerprint=payload.get("device_fingerprint") or request.headers.get("X-Device-Fingerprint") or None,
        ip_address=client_address(),
        user_agent=request.headers.get("User-Agent"),
    )


def register(app: Flask, container: Container) -> None:
    guard = container.auth_guard

    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    def login():
        payload = json_body()
        result = container.auth_service.login(
            payload.get("email", ""),
            payload.get("password", ""),
            client_key=client_address(),
            meta=_session_meta(payload),
        )
        return jsonify({"message": "Login successful", **result.to_dict()})

    @app.route("/api/auth/refresh", methods=["POST"], endpoint="auth_refresh")
    def refresh():
        payload = json_body()
        result = container.auth_service.refresh(payload.get("refresh_token", ""), meta=_session_meta(payload))
        return jsonify({"message": "Token refreshed", **result.to_dict()})

    @app.route("/api/auth/logout", methods=["POST"], endpoint="auth_logout")
    @guard.login_required
    def logout():
        container.auth_service.logout(g.current_user, g.session)
        return jsonify({"message": "Logged out successfully"})

    @app.route("/api/auth/me", methods=["GET"], endpoint="auth_me")
    @guard.login_required
    def me():
        return jsonify({"user": g.current_user.to_public_dict(), "session": g.session.to_dict()})

    @app.route("/api/auth/sessions", methods=["GET"], endpoint="auth_sessions")
    @guard.login_required
    def sessions():
        items = container.session_manager.list_active_sessions(g.current_user.user_id)
        return jsonify({"sessions": [s.to_dict() for s in items]})

    @app.route("/api/admin/users/<int:user_id>/sessions/invalidate", methods=["POST"], endpoint="admin_invalidate_sessions")
    @guard.admin_required
    def invalidate_sessions(user_id: int):
        if not container.users_repo.get_by_id(user_id):
            raise NotFoundError(f"User {user_id} not found")
        count = container.session_manager.invalidate_user_sessions(user_id, reason=InvalidationReason.ADMIN_ACTION)
        container.activity_recorder.record(
            user_id=g.current_user.user_id,
            action="invalidate_sessions",
            entity_type="user",
            entity_id=user_id,
            description=f"Admin invalidated {count} session(s)",
            metadata={"count": count},
        )
        return jsonify({"message": "Sessions invalidated", "invalidated": count})
