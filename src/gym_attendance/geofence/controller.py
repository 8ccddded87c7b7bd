from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.validators import require_coordinates
from ..common.web import login_required
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/locations/validate", methods=["POST"], endpoint="locations_validate")
    @login_required
    def validate_location():
        payload = request.get_json(silent=True) or {}
        lat, lon = require_coordinates(payload.get("latitude"), payload.get("longitude"))
        result = container.geofence.validate(lat, lon)
        return jsonify({"success": True, **result.to_dict()})

    @app.route("/api/locations", methods=["GET"], endpoint="locations_list")
    @login_required
    def list_locations():
        zones = container.geofence.active_zones()
        return jsonify(
            {
                "success": True,
                "locations": [
                    {
                        "id": z.zone_id,
                        "name": z.name,
                        "address": z.address,
                        "latitude": z.latitude,
                        "longitude": z.longitude,
                        "radius": z.radius_m,
                    }
                    for z in zones
                ],
            }
        )
