from __future__ import annotations

from datetime import time

from flask import Flask, jsonify, request

from ..common.datetime_utils import local_datetime, parse_iso_date
from ..common.web import current_member_id, current_role, login_required, staff_required
from ..container import Container
from ..core.enums import MembershipPlan
from ..core.exceptions import ValidationError


def _plan_from(payload: dict) -> MembershipPlan:
    try:
        return MembershipPlan(str(payload.get("plan", "")).strip())
    except ValueError:
        raise ValidationError("Invalid membership plan")


def register(app: Flask, container: Container) -> None:
    @app.route("/api/membership/request", methods=["POST"], endpoint="membership_request")
    @login_required
    def membership_request():
        payload = request.get_json(silent=True) or {}
        plan = _plan_from(payload)

        start_date = None
        if payload.get("startDate"):
            try:
                day = parse_iso_date(str(payload["startDate"]))
            except ValueError:
                raise ValidationError("startDate must be YYYY-MM-DD")
            start_date = local_datetime(day, time(0, 0), container.config.tz)

        membership = container.ledger.request_plan(current_member_id(), plan, start_date=start_date)
        return jsonify(
            {
                "success": True,
                "message": "Membership request submitted. Waiting for approval.",
                "membership": membership.to_dict(),
            }
        ), 201

    @app.route("/api/membership/status", methods=["GET"], endpoint="membership_status")
    @login_required
    def membership_status():
        return jsonify({"success": True, "membership": container.ledger.get_status(current_member_id())})

    @app.route("/api/membership/<int:member_id>/approve", methods=["POST"], endpoint="membership_approve")
    @staff_required
    def membership_approve(member_id: int):
        membership = container.ledger.approve(member_id, current_role=current_role())
        return jsonify({"success": True, "message": "Membership approved", "membership": membership.to_dict()})

    @app.route("/api/membership/<int:member_id>/confirm-payment", methods=["POST"], endpoint="membership_confirm_payment")
    @staff_required
    def membership_confirm_payment(member_id: int):
        plan = _plan_from(request.get_json(silent=True) or {})
        membership = container.ledger.confirm_payment(member_id, plan)
        return jsonify({"success": True, "message": "Payment confirmed", "membership": membership.to_dict()})

    @app.route("/api/membership/<int:member_id>/expire", methods=["POST"], endpoint="membership_expire")
    @staff_required
    def membership_expire(member_id: int):
        membership = container.ledger.expire_now(member_id, current_role=current_role())
        return jsonify({"success": True, "message": "Membership expired", "membership": membership.to_dict()})
