"""
Shared authentication helpers.
Provides session login/logout and principal lookup with role enforcement.
"""

import logging
from typing import Optional, Tuple

from flask import Response, jsonify, session

from community_connect.storage.context import get_storage
from community_connect.storage.models import User

SESSION_USER_KEY = "user_id"


# --- SESSION LIFECYCLE ---
def login_user(user: User) -> None:
    """
    Establish a session for `user`.

    The old session is cleared first so no data from an earlier principal
    survives the switch. Only the user id is stored in the cookie.
    """
    session.clear()
    session[SESSION_USER_KEY] = user.id
    session.permanent = True
    logging.info(f"[Auth] Session established for user {user.id}")


def logout_user() -> None:
    session.clear()


# --- PRINCIPAL LOOKUP ---
def get_session_user(
    require_organizer: bool = False,
) -> Tuple[Optional[User], Optional[Response], Optional[int]]:
    """
    Resolve the logged-in user from the session cookie.

    Args:
        require_organizer (bool): Reject principals that are not organizers.

    Returns:
        tuple: (user, error_response, status_code)
               If successful, error_response and status_code are None.
               If failed, user is None.
    """
    user_id = session.get(SESSION_USER_KEY)
    if user_id is None:
        return None, jsonify({"message": "Not authenticated"}), 401

    user = get_storage().get_user(user_id)
    if not user:
        # The account behind this cookie no longer exists
        session.clear()
        return None, jsonify({"message": "Not authenticated"}), 401

    if require_organizer and not user.is_organizer:
        return None, jsonify({"message": "Only organizers can perform this action"}), 403

    return user, None, None
