"""
Entity models for the community connect store.

Each dataclass mirrors one collection held by the storage engine.
`to_dict()` produces the camelCase JSON shape the client expects; it is the
only place where models are turned into wire data.
"""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Tuple, Union


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def normalize_categories(value: Union[str, Iterable[str], None]) -> Tuple[str, ...]:
    """
    Turn a comma-joined string or a list of strings into an ordered set.

    Blank entries are dropped, surrounding whitespace is stripped and
    duplicates (compared case-insensitively) keep their first spelling.

    Args:
        value: "Environment, Parks" or ["Environment", "Parks"] or None.
                List entries are split on commas as well, so every
                stored category survives the comma-joined wire form.

    Returns:
        tuple: ("Environment", "Parks")
    """
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    # a list entry may itself be comma-joined
    items = [part for item in value for part in str(item).split(",")]

    seen = set()
    categories = []
    for item in items:
        name = str(item).strip()
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        categories.append(name)
    return tuple(categories)


def join_categories(categories: Iterable[str]) -> str:
    return ",".join(categories)


class Model:
    """Shared helpers for the entity dataclasses."""

    def merged(self, changes: Dict[str, Any]):
        # id is assigned by the store and never overwritten
        known = {f.name for f in fields(self)} - {"id"}
        return replace(self, **{k: v for k, v in changes.items() if k in known})


@dataclass
class User(Model):
    id: int
    username: str
    password: str
    name: str
    email: str
    bio: str = ""
    interests: str = ""
    points: int = 0
    is_organizer: bool = False
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        # the password hash is never part of the wire shape
        return {
            "id": self.id,
            "username": self.username,
            "name": self.name,
            "email": self.email,
            "bio": self.bio,
            "interests": self.interests,
            "points": self.points,
            "isOrganizer": self.is_organizer,
            "createdAt": _iso(self.created_at),
        }


@dataclass
class Organization(Model):
    id: int
    user_id: int
    name: str
    description: str
    website: str = ""
    email: str = ""
    categories: Tuple[str, ...] = ()
    followers: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "name": self.name,
            "description": self.description,
            "website": self.website,
            "email": self.email,
            "categories": join_categories(self.categories),
            "followers": self.followers,
        }


@dataclass
class Event(Model):
    id: int
    organizer_id: int
    organization_id: Optional[int]
    title: str
    description: str
    date: datetime
    location: str
    points_value: int = 0
    status: str = "active"
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "organizerId": self.organizer_id,
            "organizationId": self.organization_id,
            "title": self.title,
            "description": self.description,
            "date": _iso(self.date),
            "location": self.location,
            "pointsValue": self.points_value,
            "status": self.status,
            "createdAt": _iso(self.created_at),
        }


@dataclass
class EventParticipant(Model):
    id: int
    event_id: int
    user_id: int
    status: str = "registered"
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "eventId": self.event_id,
            "userId": self.user_id,
            "status": self.status,
            "createdAt": _iso(self.created_at),
        }


@dataclass
class SavedOrganization(Model):
    id: int
    user_id: int
    organization_id: int
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "organizationId": self.organization_id,
            "createdAt": _iso(self.created_at),
        }
