"""Field attendance integrity service.

Feature modules (geofence, spoofing, attendance, sync, sessions, ...) sit
behind a thin Flask JSON controller layer and service/repository layers.
"""
