"""Gym attendance package.

Organized by feature modules (geofence, members, attendance, reconciliation, ...)
with a thin Flask controller layer over service/repository layers.
"""
