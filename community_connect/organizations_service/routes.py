"""
Organizations service routes: browse, search, edit and follow organizations.

Following an organization is called "saving" it; the store keeps the
organization's follower count in step with the saved links.
"""

import logging
from typing import Tuple

from flask import Blueprint, Response, jsonify, request

from community_connect.auth_service.utils import get_session_user
from community_connect.shared.http import add_request_logging, json_body, validation_error
from community_connect.shared.schemas import ValidationError, parse_int, parse_organization
from community_connect.storage.base import AlreadyExistsError
from community_connect.storage.context import get_storage

organizations_bp = Blueprint("organizations", __name__)
add_request_logging(organizations_bp, "Organizations")


@organizations_bp.route("", methods=["GET"])
def list_organizations() -> Tuple[Response, int]:
    """
    List organizations.

    Filters:
    - ?search=<text> : case-insensitive match on name, description or categories.
    - ?organizerId=<id> : organizations owned by that user.

    Returns:
        200: List of organization objects.
        400: organizerId is not an integer.
        500: Storage error.
    """
    search = request.args.get("search", "").strip()
    organizer_param = request.args.get("organizerId")

    organizer_id = None
    if organizer_param:
        organizer_id = parse_int(organizer_param)
        if organizer_id is None:
            return jsonify({"message": "organizerId must be an integer"}), 400

    try:
        storage = get_storage()
        if search:
            organizations = storage.search_organizations(search)
        elif organizer_id is not None:
            organizations = storage.get_organizations_by_user_id(organizer_id)
        else:
            organizations = storage.get_all_organizations()
    except Exception:
        logging.exception("[Organizations] Listing failed")
        return jsonify({"message": "Failed to fetch organizations"}), 500

    return jsonify([o.to_dict() for o in organizations]), 200


@organizations_bp.route("", methods=["POST"])
def create_organization() -> Tuple[Response, int]:
    """
    Create the principal's organization.

    For organizers who registered without organization details. An
    organizer owns at most one organization.

    Returns:
        201: Organization object.
        400: Validation error, or the organizer already has one.
        401/403: Not logged in / not an organizer.
    """
    user, err, code = get_session_user(require_organizer=True)
    if err:
        return err, code

    try:
        fields = parse_organization(json_body())
    except ValidationError as e:
        return validation_error(e)

    try:
        storage = get_storage()
        if storage.get_organization_by_user_id(user.id):
            return jsonify({"message": "Organization already exists for this organizer"}), 400
        organization = storage.create_organization({**fields, "user_id": user.id})
    except Exception:
        logging.exception("[Organizations] Creation failed")
        return jsonify({"message": "Failed to create organization"}), 500

    return jsonify(organization.to_dict()), 201


@organizations_bp.route("/user", methods=["GET"])
def get_own_organization() -> Tuple[Response, int]:
    """Return the organization owned by the logged-in user."""
    user, err, code = get_session_user()
    if err:
        return err, code

    organization = get_storage().get_organization_by_user_id(user.id)
    if not organization:
        return jsonify({"message": "Organization not found"}), 404

    return jsonify(organization.to_dict()), 200


@organizations_bp.route("/<int:organization_id>", methods=["GET"])
def get_organization(organization_id: int) -> Tuple[Response, int]:
    organization = get_storage().get_organization(organization_id)
    if not organization:
        return jsonify({"message": "Organization not found"}), 404

    return jsonify(organization.to_dict()), 200


@organizations_bp.route("/<int:organization_id>", methods=["PUT"])
def update_organization(organization_id: int) -> Tuple[Response, int]:
    """
    Update an organization profile.

    Permission:
    - The owning user only.

    Allowed fields: name, description, website, email, categories.
    The owner and follower count cannot be changed here.

    Returns:
        200: Updated organization.
        400: Validation error.
        401/403/404: Not logged in / not the owner / unknown id.
    """
    user, err, code = get_session_user()
    if err:
        return err, code

    storage = get_storage()
    organization = storage.get_organization(organization_id)
    if not organization:
        return jsonify({"message": "Organization not found"}), 404

    if organization.user_id != user.id:
        return jsonify({"message": "Not authorized to update this organization"}), 403

    try:
        changes = parse_organization(json_body(), partial=True)
    except ValidationError as e:
        return validation_error(e)

    try:
        updated = storage.update_organization(organization_id, changes)
    except Exception:
        logging.exception(f"[Organizations] Update of {organization_id} failed")
        return jsonify({"message": "Failed to update organization"}), 500

    if not updated:
        return jsonify({"message": "Organization not found"}), 404

    return jsonify(updated.to_dict()), 200


# --- FOLLOWING ---
@organizations_bp.route("/<int:organization_id>/save", methods=["POST"])
def save_organization(organization_id: int) -> Tuple[Response, int]:
    """
    Follow an organization.

    Returns:
        201: The saved-organization link.
        400: Already saved.
        401/404: Not logged in / unknown organization.
    """
    user, err, code = get_session_user()
    if err:
        return err, code

    storage = get_storage()
    if not storage.get_organization(organization_id):
        return jsonify({"message": "Organization not found"}), 404

    try:
        saved = storage.save_organization({"user_id": user.id, "organization_id": organization_id})
    except AlreadyExistsError:
        return jsonify({"message": "Organization already saved"}), 400
    except Exception:
        logging.exception(f"[Organizations] Save of {organization_id} failed")
        return jsonify({"message": "Failed to save organization"}), 500

    return jsonify(saved.to_dict()), 201


@organizations_bp.route("/<int:organization_id>/unsave", methods=["DELETE"])
def unsave_organization(organization_id: int) -> Tuple[Response, int]:
    """Stop following an organization. Unsaving something not saved is a no-op."""
    user, err, code = get_session_user()
    if err:
        return err, code

    try:
        get_storage().unsave_organization(user.id, organization_id)
    except Exception:
        logging.exception(f"[Organizations] Unsave of {organization_id} failed")
        return jsonify({"message": "Failed to unsave organization"}), 500

    return Response(status=204), 204
