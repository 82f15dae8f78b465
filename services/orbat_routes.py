"""
ORBAT Routes

Flask blueprint for the order of battle.
"""

import logging
from functools import wraps

from flask import Blueprint, jsonify, request, session

from db import get_db
from services.orbat import OrbatError, assign_slot, build_tree, clear_slot, get_slots

logger = logging.getLogger(__name__)

orbat_bp = Blueprint("orbat", __name__, url_prefix="/api/orbat")

READ_ONLY_ROLES = {"guest", "marine"}


def require_auth(f):
    """Require a signed-in session; read-only roles may only GET."""

    @wraps(f)
    def decorated(*args, **kwargs):
        if not session.get("user_id"):
            return jsonify({"error": "Unauthorized"}), 401
        if request.method not in ("GET", "HEAD", "OPTIONS") and (
            session.get("role") in READ_ONLY_ROLES
        ):
            return jsonify({"error": "Read-only access"}), 403
        return f(*args, **kwargs)

    return decorated


@orbat_bp.errorhandler(OrbatError)
def handle_orbat_error(e):
    return jsonify({"error": str(e)}), e.status_code


@orbat_bp.route("", methods=["GET"])
@require_auth
def list_slots():
    """Full ORBAT with personnel assignments.

    Query params:
        tree: 1 to nest slots under their parents instead of a flat list
    """
    slots = get_slots(get_db())
    if request.args.get("tree") in ("1", "true"):
        return jsonify(build_tree(slots))
    return jsonify(slots)


@orbat_bp.route("/assign", methods=["POST"])
@require_auth
def assign():
    """Assign a roster entry to a role slot. A null personnelId clears it."""
    data = request.get_json(silent=True) or {}
    slot_id = data.get("slotId")
    if not slot_id:
        return jsonify({"error": "slotId is required"}), 400

    slot = assign_slot(get_db(), slot_id, data.get("personnelId"), session.get("user_id"))
    return jsonify(slot)


@orbat_bp.route("/assign/<slot_id>", methods=["DELETE"])
@require_auth
def unassign(slot_id):
    clear_slot(get_db(), slot_id, session.get("user_id"))
    return jsonify({"success": True})
