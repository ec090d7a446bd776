"""
Users service routes: the logged-in user's profile, events and followed organizations.
"""

import logging
from typing import Tuple

from flask import Blueprint, Response, jsonify

from community_connect.auth_service.utils import get_session_user
from community_connect.shared.http import add_request_logging, json_body, validation_error
from community_connect.shared.schemas import ValidationError, parse_profile_update
from community_connect.storage.context import get_storage

users_bp = Blueprint("users", __name__)
add_request_logging(users_bp, "Users")


# --- UPDATE PROFILE ---
@users_bp.route("/profile", methods=["PUT"])
def update_profile() -> Tuple[Response, int]:
    """
    Update the current user's profile.

    Allowed fields:
    - name (cannot be blank)
    - bio
    - interests

    Returns:
        200: Updated user object (without password).
        400: No valid fields provided.
        401: Not logged in.
        404: User vanished between lookup and update.
        500: Update failed.
    """
    user, err, code = get_session_user()
    if err:
        return err, code

    try:
        changes = parse_profile_update(json_body())
    except ValidationError as e:
        return validation_error(e)

    try:
        updated = get_storage().update_user(user.id, changes)
    except Exception:
        logging.exception(f"[Users] Profile update for {user.id} failed")
        return jsonify({"message": "Failed to update profile"}), 500

    if not updated:
        return jsonify({"message": "User not found"}), 404

    return jsonify(updated.to_dict()), 200


@users_bp.route("/events", methods=["GET"])
def list_my_events() -> Tuple[Response, int]:
    """Events the current user has registered for."""
    user, err, code = get_session_user()
    if err:
        return err, code

    try:
        events = get_storage().get_user_events(user.id)
    except Exception:
        logging.exception(f"[Users] Event listing for {user.id} failed")
        return jsonify({"message": "Failed to fetch user events"}), 500

    return jsonify([e.to_dict() for e in events]), 200


@users_bp.route("/saved-organizations", methods=["GET"])
def list_saved_organizations() -> Tuple[Response, int]:
    """Organizations the current user follows."""
    user, err, code = get_session_user()
    if err:
        return err, code

    try:
        organizations = get_storage().get_saved_organizations(user.id)
    except Exception:
        logging.exception(f"[Users] Saved organizations for {user.id} failed")
        return jsonify({"message": "Failed to fetch saved organizations"}), 500

    return jsonify([o.to_dict() for o in organizations]), 200
