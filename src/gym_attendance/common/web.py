from __future__ import annotations

from functools import wraps

from flask import Flask, jsonify, session
from loguru import logger
from werkzeug.exceptions import HTTPException

from ..core.enums import Role
from ..core.exceptions import DomainError


def current_member_id() -> int:
    return int(session["user_id"])


def current_role() -> Role:
    try:
        return Role(session.get("role", Role.MEMBER.value))
    except ValueError:
        return Role.MEMBER


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"success": False, "message": "Please log in to continue"}), 401
        return view(*args, **kwargs)

    return wrapper


def staff_required(view):
    """Allow admin and manager roles only."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"success": False, "message": "Please log in to continue"}), 401
        if not current_role().is_staff:
            return jsonify({"success": False, "message": "Not authorized"}), 403
        return view(*args, **kwargs)

    return wrapper


def install_error_handlers(app: Flask) -> None:
    """DomainError carries its own status; anything else is a logged 500."""

    @app.errorhandler(DomainError)
    def _domain_error(e: DomainError):
        return jsonify({"success": False, "message": str(e)}), e.status_code

    @app.errorhandler(Exception)
    def _unexpected(e: Exception):
        if isinstance(e, HTTPException):
            return jsonify({"success": False, "message": e.description}), e.code
        logger.exception(f"Unhandled error: {e}")
        return jsonify({"success": False, "message": "Internal server error"}), 500
