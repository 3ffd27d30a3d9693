from __future__ import annotations

from flask import Flask, g, jsonify

from ..container import Container


def register(app: Flask, container: Container) -> None:
    guard = container.auth_guard

    @app.route("/api/devices", methods=["GET"], endpoint="devices_list")
    @guard.login_required
    def list_devices():
        devices = container.device_registry.list_for_user(g.current_user.user_id)
        return jsonify({"devices": [d.to_dict() for d in devices]})

    @app.route("/api/admin/devices/<int:device_id>/approve", methods=["POST"], endpoint="devices_approve")
    @guard.admin_required
    def approve(device_id: int):
        device = container.device_registry.approve(device_id, approved_by=g.current_user.user_id)
        return jsonify({"message": "Device approved", "device": device.to_dict()})

    @app.route("/api/admin/devices/<int:device_id>/revoke", methods=["POST"], endpoint="devices_revoke")
    @guard.admin_required
    def revoke(device_id: int):
        device = container.device_registry.revoke(device_id, revoked_by=g.current_user.user_id)
        return jsonify({"message": "Device revoked", "device": device.to_dict()})
