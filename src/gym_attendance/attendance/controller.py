from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.web import current_member_id, login_required
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/clock-in", methods=["POST"], endpoint="attendance_clock_in")
    @login_required
    def clock_in():
        payload = request.get_json(silent=True) or {}
        result = container.tracker.clock_in(
            current_member_id(),
            payload.get("latitude"),
            payload.get("longitude"),
            address=payload.get("address"),
        )
        body = {
            "success": True,
            "message": "Checked in successfully",
            "attendance": result.session.to_dict(),
        }
        if result.advisory:
            body["warning"] = result.advisory
        return jsonify(body), 201

    @app.route("/api/attendance/clock-out", methods=["POST"], endpoint="attendance_clock_out")
    @login_required
    def clock_out():
        payload = request.get_json(silent=True) or {}
        session_record = container.tracker.clock_out(
            current_member_id(),
            payload.get("latitude"),
            payload.get("longitude"),
            address=payload.get("address"),
        )
        return jsonify({"success": True, "message": "Checked out successfully", "attendance": session_record.to_dict()})

    @app.route("/api/attendance/today", methods=["GET"], endpoint="attendance_today")
    @login_required
    def today():
        record = container.tracker.get_today_session(current_member_id())
        return jsonify(
            {
                "success": True,
                "checkedIn": record is not None,
                "checkedOut": bool(record and not record.is_open),
                "attendance": record.to_dict() if record else None,
            }
        )

    @app.route("/api/attendance/history", methods=["GET"], endpoint="attendance_history")
    @login_required
    def history():
        limit = request.args.get("limit", default=DEFAULT_HISTORY_LIMIT, type=int)
        rows = container.tracker.get_history(current_member_id(), limit=limit)
        return jsonify({"success": True, "count": len(rows), "attendance": [r.to_dict() for r in rows]})

    @app.route("/api/attendance/stats", methods=["GET"], endpoint="attendance_stats")
    @login_required
    def stats():
        return jsonify({"success": True, "stats": container.tracker.get_stats(current_member_id())})
