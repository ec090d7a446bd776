"""
Events service routes: create, read and update events, RSVP and attendance.
Handles event lifecycle management and participation.
"""

import logging
from typing import Tuple

from flask import Blueprint, Response, jsonify, request

from community_connect.auth_service.utils import get_session_user
from community_connect.shared.http import add_request_logging, json_body, validation_error
from community_connect.shared.schemas import ValidationError, parse_event, parse_int
from community_connect.storage.base import AlreadyExistsError
from community_connect.storage.context import get_storage

events_bp = Blueprint("events", __name__)
add_request_logging(events_bp, "Events")

REGISTERED = "registered"


@events_bp.route("", methods=["GET"])
def list_events() -> Tuple[Response, int]:
    """
    Return events.

    Query Logic:
    - ?organizerId=<id> : every event of that organizer, past ones included.
    - No filter: upcoming events only, soonest first.

    Returns:
        200: List of event objects.
        400: organizerId is not an integer.
        500: Storage error.
    """
    organizer_param = request.args.get("organizerId")

    try:
        storage = get_storage()
        if organizer_param:
            organizer_id = parse_int(organizer_param)
            if organizer_id is None:
                return jsonify({"message": "organizerId must be an integer"}), 400
            events = storage.get_events_by_organizer_id(organizer_id)
        else:
            events = storage.get_upcoming_events()
    except Exception:
        logging.exception("[Events] Listing failed")
        return jsonify({"message": "Failed to fetch events"}), 500

    return jsonify([e.to_dict() for e in events]), 200


@events_bp.route("/<int:event_id>", methods=["GET"])
def get_event(event_id: int) -> Tuple[Response, int]:
    event = get_storage().get_event(event_id)
    if not event:
        return jsonify({"message": "Event not found"}), 404

    return jsonify(event.to_dict()), 200


@events_bp.route("", methods=["POST"])
def create_event() -> Tuple[Response, int]:
    """
    Create an event under the organizer's own organization.

    The organization is always looked up from the session principal;
    organizerId/organizationId in the body are ignored.

    Returns:
        201: Event object.
        400: Validation error, or the organizer has no organization.
        401/403: Not logged in / not an organizer.
        500: Storage error.
    """
    user, err, code = get_session_user(require_organizer=True)
    if err:
        return err, code

    storage = get_storage()
    organization = storage.get_organization_by_user_id(user.id)
    if not organization:
        return jsonify({"message": "Organization not found for this organizer"}), 400

    try:
        fields = parse_event(json_body())
    except ValidationError as e:
        return validation_error(e)

    try:
        event = storage.create_event(
            {**fields, "organizer_id": user.id, "organization_id": organization.id}
        )
    except Exception:
        logging.exception("[Events] Creation failed")
        return jsonify({"message": "Failed to create event"}), 500

    return jsonify(event.to_dict()), 201


@events_bp.route("/<int:event_id>", methods=["PUT"])
def update_event(event_id: int) -> Tuple[Response, int]:
    """
    Update an event.

    Permission:
    - The organizer who created it.

    Allowed fields: title, description, date, location, pointsValue, status.

    Returns:
        200: Updated event.
        400: Validation error.
        401/403/404: Not logged in / not the owner / unknown id.
    """
    user, err, code = get_session_user()
    if err:
        return err, code

    storage = get_storage()
    event = storage.get_event(event_id)
    if not event:
        return jsonify({"message": "Event not found"}), 404

    if event.organizer_id != user.id:
        return jsonify({"message": "Not authorized to update this event"}), 403

    try:
        changes = parse_event(json_body(), partial=True)
    except ValidationError as e:
        return validation_error(e)

    try:
        updated = storage.update_event(event_id, changes)
    except Exception:
        logging.exception(f"[Events] Update of {event_id} failed")
        return jsonify({"message": "Failed to update event"}), 500

    if not updated:
        return jsonify({"message": "Event not found"}), 404

    return jsonify(updated.to_dict()), 200


# --- PARTICIPATION ---
@events_bp.route("/<int:event_id>/register", methods=["POST"])
def register_for_event(event_id: int) -> Tuple[Response, int]:
    """
    RSVP to an event. A user can register for an event only once.

    Returns:
        201: Participant row with status 'registered'.
        400: Already registered.
        401/404: Not logged in / unknown event.
    """
    user, err, code = get_session_user()
    if err:
        return err, code

    storage = get_storage()
    if not storage.get_event(event_id):
        return jsonify({"message": "Event not found"}), 404

    try:
        participant = storage.add_event_participant(
            {"event_id": event_id, "user_id": user.id, "status": REGISTERED}
        )
    except AlreadyExistsError:
        return jsonify({"message": "Already registered for this event"}), 400
    except Exception:
        logging.exception(f"[Events] Registration for {event_id} failed")
        return jsonify({"message": "Failed to register for event"}), 500

    return jsonify(participant.to_dict()), 201


@events_bp.route("/<int:event_id>/participants", methods=["GET"])
def get_participants(event_id: int) -> Tuple[Response, int]:
    """Participant rows (RSVPs and attendance) for an event."""
    storage = get_storage()
    if not storage.get_event(event_id):
        return jsonify({"message": "Event not found"}), 404

    participants = storage.get_event_participants(event_id)
    return jsonify([p.to_dict() for p in participants]), 200


@events_bp.route("/<int:event_id>/participants/<int:user_id>/attend", methods=["POST"])
def record_attendance(event_id: int, user_id: int) -> Tuple[Response, int]:
    """
    Mark a registered user as having attended and credit the event's points.

    Permission:
    - The organizer who created the event.

    Returns:
        200: Updated participant row.
        400: Attendance already recorded.
        401/403/404: Not logged in / not the owner / unknown event or registration.
    """
    organizer, err, code = get_session_user()
    if err:
        return err, code

    storage = get_storage()
    event = storage.get_event(event_id)
    if not event:
        return jsonify({"message": "Event not found"}), 404

    if event.organizer_id != organizer.id:
        return jsonify({"message": "Not authorized to manage this event"}), 403

    try:
        updated = storage.record_attendance(event_id, user_id, event.points_value)
    except AlreadyExistsError:
        return jsonify({"message": "Attendance already recorded"}), 400
    except Exception:
        logging.exception(f"[Events] Attendance for {event_id}/{user_id} failed")
        return jsonify({"message": "Failed to record attendance"}), 500

    if not updated:
        return jsonify({"message": "User is not registered for this event"}), 404

    return jsonify(updated.to_dict()), 200
