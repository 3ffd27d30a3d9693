from __future__ import annotations

from flask import Flask, g, jsonify, request

from ..common.http import json_body
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    guard = container.auth_guard

    @app.route("/api/attendance/clock-in", methods=["POST"], endpoint="attendance_clock_in")
    @guard.login_required
    def clock_in():
        record = container.attendance_engine.clock_in(json_body(), g.current_user)
        return jsonify({"message": "Clocked in successfully", "attendance": record.to_dict()}), 201

    @app.route("/api/attendance/clock-out", methods=["POST"], endpoint="attendance_clock_out")
    @guard.login_required
    def clock_out():
        record = container.attendance_engine.clock_out(json_body(), g.current_user)
        return jsonify({"message": "Clocked out successfully", "attendance": record.to_dict()})

    @app.route("/api/attendance/sync", methods=["POST"], endpoint="attendance_sync")
    @guard.login_required
    def sync():
        records = json_body().get("records")
        if not isinstance(records, list) or not records:
            raise ValidationError("records must be a non-empty array")
        result = container.sync_reconciler.sync_batch(records, g.current_user)
        return jsonify(result.to_dict())

    @app.route("/api/attendance/current", methods=["GET"], endpoint="attendance_current")
    @guard.login_required
    def current():
        record = container.attendance_engine.get_current(g.current_user.user_id)
        return jsonify({"attendance": record.to_dict() if record else None})

    @app.route("/api/attendance/history", methods=["GET"], endpoint="attendance_history")
    @guard.login_required
    def history():
        try:
            limit = int(request.args.get("limit", DEFAULT_HISTORY_LIMIT))
        except ValueError:
            raise ValidationError("limit must be an integer")
        records = container.attendance_engine.get_history(g.current_user.user_id, limit=limit)
        return jsonify({"attendance": [r.to_dict() for r in records]})
