"""
Storage capability set.

Route handlers talk to the store only through this protocol, so the
in-memory engine can be swapped for a relational or document backend
without touching route code. Lookups signal absence with None; they never
raise for an unknown id.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from community_connect.storage.models import (
    Event,
    EventParticipant,
    Organization,
    SavedOrganization,
    User,
)


class UsernameTakenError(Exception):
    """Raised by create_user when the username exists (case-insensitive)."""

    def __init__(self, username: str) -> None:
        super().__init__(f"Username already exists: {username}")
        self.username = username


class AlreadyExistsError(Exception):
    """Raised when a follow link, RSVP or attendance record is already in place."""


class Storage(Protocol):
    # --- USERS ---
    def get_user(self, user_id: int) -> Optional[User]: ...

    def get_user_by_username(self, username: str) -> Optional[User]: ...

    def create_user(
        self, data: Dict[str, Any], organization: Optional[Dict[str, Any]] = None
    ) -> User: ...

    def update_user(self, user_id: int, changes: Dict[str, Any]) -> Optional[User]: ...

    # --- ORGANIZATIONS ---
    def get_organization(self, organization_id: int) -> Optional[Organization]: ...

    def get_organization_by_user_id(self, user_id: int) -> Optional[Organization]: ...

    def create_organization(self, data: Dict[str, Any]) -> Organization: ...

    def update_organization(
        self, organization_id: int, changes: Dict[str, Any]
    ) -> Optional[Organization]: ...

    def get_all_organizations(self) -> List[Organization]: ...

    def get_organizations_by_user_id(self, user_id: int) -> List[Organization]: ...

    def search_organizations(self, query: str) -> List[Organization]: ...

    # --- EVENTS ---
    def get_event(self, event_id: int) -> Optional[Event]: ...

    def get_events_by_organizer_id(self, organizer_id: int) -> List[Event]: ...

    def get_upcoming_events(self, now: Optional[datetime] = None) -> List[Event]: ...

    def create_event(self, data: Dict[str, Any]) -> Event: ...

    def update_event(self, event_id: int, changes: Dict[str, Any]) -> Optional[Event]: ...

    # --- EVENT PARTICIPANTS ---
    def add_event_participant(self, data: Dict[str, Any]) -> EventParticipant: ...

    def get_event_participant(
        self, event_id: int, user_id: int
    ) -> Optional[EventParticipant]: ...

    def get_event_participants(self, event_id: int) -> List[EventParticipant]: ...

    def update_event_participant(
        self, participant_id: int, changes: Dict[str, Any]
    ) -> Optional[EventParticipant]: ...

    def record_attendance(
        self, event_id: int, user_id: int, points: int
    ) -> Optional[EventParticipant]: ...

    def get_user_events(self, user_id: int) -> List[Event]: ...

    # --- SAVED ORGANIZATIONS ---
    def save_organization(self, data: Dict[str, Any]) -> SavedOrganization: ...

    def get_saved_organizations(self, user_id: int) -> List[Organization]: ...

    def is_organization_saved(self, user_id: int, organization_id: int) -> bool: ...

    def unsave_organization(self, user_id: int, organization_id: int) -> None: ...
