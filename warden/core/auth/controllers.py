"""Auth HTTP controllers (API only)."""

from __future__ import annotations

from flask import Blueprint, jsonify

from warden.core.auth.context import get_authentication
from warden.core.auth.schemas import serialize_authentication

auth_bp = Blueprint("auth_api", __name__)


@auth_bp.get("/me")
def me():
    authentication = get_authentication()
    if authentication is None:
        return jsonify({"ok": False, "error": "unauthorized"}), 401
    return jsonify({"ok": True, "user": serialize_authentication(authentication).model_dump()})
