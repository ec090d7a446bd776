"""
Request payload parsing shared by the route handlers.

Each `parse_*` function takes the raw JSON body, validates it and returns
a dict of snake_case fields ready for the store. Problems are collected
and raised together as a single `ValidationError`, which the routes turn
into a 400 response with a `details` list.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

# --- CONSTANTS FOR VALIDATION ---
PASSWORD_MIN_LENGTH = 6
ORG_NAME_MIN_LENGTH = 2
ORG_DESCRIPTION_MIN_LENGTH = 10
TITLE_MAX_LENGTH = 200
VALID_EVENT_STATUSES = ["active", "cancelled", "completed"]
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(Exception):
    """Malformed or missing input. Rendered as a 400 response."""

    def __init__(self, message: str, details: Optional[List[Dict[str, str]]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class _Errors:
    """Collects field problems so one response can report all of them."""

    def __init__(self) -> None:
        self.details: List[Dict[str, str]] = []

    def add(self, field: str, message: str) -> None:
        self.details.append({"field": field, "message": message})

    def raise_if_any(self) -> None:
        if self.details:
            summary = "; ".join(f'{d["message"]} at "{d["field"]}"' for d in self.details)
            raise ValidationError(f"Validation error: {summary}", self.details)


def parse_dt(val: Any) -> Optional[datetime]:
    """
    Safely parse an ISO-8601 or datetime-local string to an aware datetime.

    Naive values are taken to be UTC.

    Args:
        val (str): The date string to parse.

    Returns:
        datetime: The parsed datetime, or None if invalid.
    """
    if not val or not isinstance(val, str):
        return None
    try:
        # Handles 'YYYY-MM-DDTHH:MM' and '...Z' or '...+00:00'
        if val.endswith("Z"):
            val = val[:-1] + "+00:00"
        parsed = datetime.fromisoformat(val)
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_int(val: Any) -> Optional[int]:
    """Parse an integer from a JSON number or a query-string value."""
    if isinstance(val, bool):
        return None
    if isinstance(val, int):
        return val
    try:
        return int(str(val).strip())
    except (ValueError, TypeError):
        return None


def _text(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    return value.strip() if isinstance(value, str) else str(value)


# --- USERS ---
def parse_registration(data: Dict[str, Any]) -> Tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
    """
    Validate a user or organizer registration payload.

    Expects:
    - username, password, name, email (required)
    - confirmPassword (optional, must match password)
    - bio, interests (optional)
    - isOrganizer (bool) and, for organizers, an optional `organization`
      object validated by `parse_organization`.

    Returns:
        tuple: (user fields, organization fields or None)
    """
    required = ["username", "password", "name", "email"]
    missing = [key for key in required if not _text(data, key)]
    if missing:
        raise ValidationError(
            "Missing required fields. Username, password, name, and email are required.",
            [{"field": key, "message": "Required"} for key in missing],
        )

    errors = _Errors()
    password = data.get("password")
    if not isinstance(password, str) or len(password) < PASSWORD_MIN_LENGTH:
        errors.add("password", f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if "confirmPassword" in data and data.get("confirmPassword") != password:
        errors.add("confirmPassword", "Passwords don't match")

    email = _text(data, "email")
    if not EMAIL_RE.match(email):
        errors.add("email", "Please provide a valid email")

    is_organizer = bool(data.get("isOrganizer"))
    organization = None
    raw_org = data.get("organization")
    if is_organizer and raw_org is not None:
        if not isinstance(raw_org, dict):
            errors.add("organization", "Expected an object")
        else:
            try:
                organization = parse_organization(raw_org)
            except ValidationError as e:
                for detail in e.details:
                    errors.add(f'organization.{detail["field"]}', detail["message"])

    errors.raise_if_any()

    user = {
        "username": _text(data, "username"),
        "password": password,
        "name": _text(data, "name"),
        "email": email,
        "bio": _text(data, "bio") or "",
        "interests": _text(data, "interests") or "",
        "is_organizer": is_organizer,
    }
    return user, organization


def parse_profile_update(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a profile edit. Only name, bio and interests are accepted."""
    changes = {key: _text(data, key) for key in ("name", "bio", "interests") if key in data}

    errors = _Errors()
    if "name" in changes and not changes["name"]:
        errors.add("name", "Name cannot be empty")
    errors.raise_if_any()

    if not changes:
        raise ValidationError("No valid fields provided")
    return {k: v or "" for k, v in changes.items()}


# --- ORGANIZATIONS ---
def parse_organization(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    Validate organization profile fields.

    With `partial=True` only the supplied fields are checked and returned;
    `userId` and `followers` are never accepted from the client.
    """
    errors = _Errors()
    fields: Dict[str, Any] = {}

    if not partial or "name" in data:
        name = _text(data, "name") or ""
        if len(name) < ORG_NAME_MIN_LENGTH:
            errors.add("name", "Organization name is required")
        fields["name"] = name

    if not partial or "description" in data:
        description = _text(data, "description") or ""
        if len(description) < ORG_DESCRIPTION_MIN_LENGTH:
            errors.add("description", "Please provide a description")
        fields["description"] = description

    if "website" in data or not partial:
        fields["website"] = _text(data, "website") or ""

    if "email" in data or not partial:
        email = _text(data, "email") or ""
        if email and not EMAIL_RE.match(email):
            errors.add("email", "Please provide a valid email")
        fields["email"] = email

    if "categories" in data or not partial:
        categories = data.get("categories") or ""
        if not isinstance(categories, (str, list)):
            errors.add("categories", "Expected a string or a list of strings")
        fields["categories"] = categories

    errors.raise_if_any()

    if partial and not fields:
        raise ValidationError("No valid fields provided")
    return fields


# --- EVENTS ---
def parse_event(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    Validate event fields.

    Required on create: title, description, date (ISO-8601), location.
    Optional: pointsValue (int >= 0, default 0), status (default 'active').
    `organizerId` and `organizationId` are ignored; the route derives both
    from the session principal.
    """
    errors = _Errors()
    fields: Dict[str, Any] = {}

    for key in ("title", "description", "location"):
        if not partial or key in data:
            value = _text(data, key)
            if not value:
                errors.add(key, "Required")
            fields[key] = value

    if fields.get("title") and len(fields["title"]) > TITLE_MAX_LENGTH:
        errors.add("title", f"Title must be {TITLE_MAX_LENGTH} characters or less.")

    if not partial or "date" in data:
        date = parse_dt(data.get("date"))
        if not date:
            errors.add("date", "Invalid datetime format. Use ISO-8601.")
        fields["date"] = date

    if "pointsValue" in data:
        points = parse_int(data.get("pointsValue"))
        if points is None or points < 0:
            errors.add("pointsValue", "Points value must be a non-negative integer")
        fields["points_value"] = points
    elif not partial:
        fields["points_value"] = 0

    if "status" in data:
        status = data.get("status")
        if status not in VALID_EVENT_STATUSES:
            errors.add("status", f"status must be one of: {', '.join(VALID_EVENT_STATUSES)}")
        fields["status"] = status
    elif not partial:
        fields["status"] = "active"

    errors.raise_if_any()

    if partial and not fields:
        raise ValidationError("No valid fields to update")
    return fields
