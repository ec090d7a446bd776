"""
Authentication service route handlers.

Provides routes for:
- User and organizer registration
- Login / logout
- Current user retrieval

Password hashing lives in `auth_service.passwords`; session handling in
`auth_service.utils`. The password hash never leaves the server: every
user in a response goes through `User.to_dict()`.
"""

import logging
from typing import Tuple

from flask import Blueprint, Response, jsonify

from community_connect.auth_service.passwords import hash_password, verify_dummy, verify_password
from community_connect.auth_service.utils import get_session_user, login_user, logout_user
from community_connect.shared.http import add_request_logging, json_body, validation_error
from community_connect.shared.schemas import ValidationError, parse_registration
from community_connect.storage.base import UsernameTakenError
from community_connect.storage.context import get_storage

auth_bp = Blueprint("auth", __name__)
add_request_logging(auth_bp, "Auth")


# --- REGISTER ---
@auth_bp.route("/register", methods=["POST"])
def register() -> Tuple[Response, int]:
    """
    Register a new user, and their organization when registering as an organizer.

    Expects a JSON body with:
    - username (str): Unique, case-insensitive.
    - password (str): Minimum 6 characters.
    - name (str)
    - email (str)
    - isOrganizer (bool, optional)
    - organization (object, optional): name, description, website, email, categories.

    Returns:
        201: The new user (without password). A session is established.
        400: Missing fields, invalid input, or username already exists.
        500: Server-side error (hashing or storage).
    """
    try:
        user_fields, organization_fields = parse_registration(json_body())
    except ValidationError as e:
        return validation_error(e)

    storage = get_storage()

    if storage.get_user_by_username(user_fields["username"]):
        return jsonify({"message": "Username already exists"}), 400

    try:
        user_fields["password"] = hash_password(user_fields["password"])
        # the account and its organization are stored together or not at all
        user = storage.create_user(user_fields, organization_fields)
    except UsernameTakenError:
        # Lost a race with a concurrent registration for the same name
        return jsonify({"message": "Username already exists"}), 400
    except Exception:
        logging.exception("[Auth] Registration failed")
        return jsonify({"message": "Registration failed"}), 500

    login_user(user)
    return jsonify(user.to_dict()), 201


# --- LOGIN ---
@auth_bp.route("/login", methods=["POST"])
def login() -> Tuple[Response, int]:
    """
    Authenticate a user and establish a session.

    Expects a JSON body with:
    - username (str)
    - password (str)

    Returns:
        200: The user (without password).
        400: Missing credentials.
        401: Invalid credentials (the response does not say which field was wrong).
        500: Storage error.
    """
    data = json_body()
    username = data.get("username")
    password = data.get("password")

    if not isinstance(username, str) or not isinstance(password, str) or not username or not password:
        return jsonify({"message": "Username and password required"}), 400

    try:
        user = get_storage().get_user_by_username(username.strip())
        if user:
            valid = verify_password(password, user.password)
        else:
            valid = verify_dummy(password)
    except Exception:
        logging.exception("[Auth] Login failed")
        return jsonify({"message": "Login failed"}), 500

    if not user or not valid:
        return jsonify({"message": "Invalid credentials"}), 401

    login_user(user)
    return jsonify(user.to_dict()), 200


# --- LOGOUT ---
@auth_bp.route("/logout", methods=["POST"])
def logout() -> Tuple[Response, int]:
    """End the current session. Succeeds even without one."""
    logout_user()
    return jsonify({"message": "Logged out"}), 200


# --- GET CURRENT USER ---
@auth_bp.route("/user", methods=["GET"])
def get_current_user() -> Tuple[Response, int]:
    """
    Return the logged-in user.

    Returns:
        200: User object (without password).
        401: No session.
    """
    user, err, code = get_session_user()
    if err:
        return err, code

    return jsonify(user.to_dict()), 200
