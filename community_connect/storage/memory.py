"""
In-memory storage engine.

Holds the five entity collections in dicts keyed by sequential integer ids.
Data is lost on restart; this stands in for a real database. Every mutation
runs under one re-entrant lock, and each uniqueness check shares a lock
acquisition with its insert, so counters and duplicate guards stay
consistent when Flask serves requests on several threads.
"""

import itertools
import logging
import threading
from dataclasses import fields
from datetime import datetime
from typing import Any, Dict, List, Optional

from community_connect.storage.base import AlreadyExistsError, UsernameTakenError
from community_connect.storage.models import (
    Event,
    EventParticipant,
    Organization,
    SavedOrganization,
    User,
    normalize_categories,
    utcnow,
)

# Fields the store assigns itself; callers cannot supply them on create.
SERVER_FIELDS = {"id", "created_at", "points", "followers"}
ATTENDED = "attended"


def _creatable(model, data: Dict[str, Any]) -> Dict[str, Any]:
    allowed = {f.name for f in fields(model)} - SERVER_FIELDS
    return {k: v for k, v in data.items() if k in allowed}


class MemStorage:
    """Dict-backed implementation of the `Storage` protocol."""

    def __init__(self) -> None:
        self._lock = threading.RLock()

        self._users: Dict[int, User] = {}
        self._organizations: Dict[int, Organization] = {}
        self._events: Dict[int, Event] = {}
        self._participants: Dict[int, EventParticipant] = {}
        self._saved: Dict[int, SavedOrganization] = {}

        self._user_ids = itertools.count(1)
        self._organization_ids = itertools.count(1)
        self._event_ids = itertools.count(1)
        self._participant_ids = itertools.count(1)
        self._saved_ids = itertools.count(1)

    def _rows(self, table: Dict[int, Any]) -> List[Any]:
        with self._lock:
            return list(table.values())

    # --- USERS ---
    def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        wanted = username.lower()
        return next(
            (u for u in self._rows(self._users) if u.username.lower() == wanted),
            None,
        )

    def create_user(
        self, data: Dict[str, Any], organization: Optional[Dict[str, Any]] = None
    ) -> User:
        """
        Insert a user, and the organization they own when one is given.

        The uniqueness check and the inserts share one lock acquisition, so
        two registrations racing on the same username cannot both succeed.
        Both rows are built before either is stored; a failure leaves
        neither behind.

        Raises:
            UsernameTakenError: The username exists (case-insensitive).
        """
        with self._lock:
            if self.get_user_by_username(data["username"]):
                raise UsernameTakenError(data["username"])

            user = User(
                id=next(self._user_ids),
                points=0,
                created_at=utcnow(),
                **_creatable(User, data),
            )
            owned = None
            if organization is not None:
                owned = self._build_organization({**organization, "user_id": user.id})

            self._users[user.id] = user
            logging.info(f"[Storage] Created user {user.id} ({user.username})")
            if owned:
                self._organizations[owned.id] = owned
                logging.info(f"[Storage] Created organization {owned.id} for user {user.id}")
            return user

    def update_user(self, user_id: int, changes: Dict[str, Any]) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            if not user:
                return None
            updated = user.merged(changes)
            self._users[user_id] = updated
            return updated

    # --- ORGANIZATIONS ---
    def get_organization(self, organization_id: int) -> Optional[Organization]:
        return self._organizations.get(organization_id)

    def get_organization_by_user_id(self, user_id: int) -> Optional[Organization]:
        return next(
            (o for o in self._rows(self._organizations) if o.user_id == user_id),
            None,
        )

    def _build_organization(self, data: Dict[str, Any]) -> Organization:
        values = _creatable(Organization, data)
        values["categories"] = normalize_categories(values.get("categories"))
        return Organization(id=next(self._organization_ids), followers=0, **values)

    def create_organization(self, data: Dict[str, Any]) -> Organization:
        with self._lock:
            organization = self._build_organization(data)
            self._organizations[organization.id] = organization
            logging.info(
                f"[Storage] Created organization {organization.id} "
                f"for user {organization.user_id}"
            )
            return organization

    def update_organization(
        self, organization_id: int, changes: Dict[str, Any]
    ) -> Optional[Organization]:
        if "categories" in changes:
            changes = {**changes, "categories": normalize_categories(changes["categories"])}

        with self._lock:
            organization = self._organizations.get(organization_id)
            if not organization:
                return None
            updated = organization.merged(changes)
            self._organizations[organization_id] = updated
            return updated

    def get_all_organizations(self) -> List[Organization]:
        return self._rows(self._organizations)

    def get_organizations_by_user_id(self, user_id: int) -> List[Organization]:
        return [o for o in self._rows(self._organizations) if o.user_id == user_id]

    def search_organizations(self, query: str) -> List[Organization]:
        """
        Case-insensitive substring search over name, description and
        categories. Results come back in storage order, without ranking.
        """
        needle = query.lower()
        return [
            o
            for o in self._rows(self._organizations)
            if needle in o.name.lower()
            or needle in o.description.lower()
            or any(needle in c.lower() for c in o.categories)
        ]

    # --- EVENTS ---
    def get_event(self, event_id: int) -> Optional[Event]:
        return self._events.get(event_id)

    def get_events_by_organizer_id(self, organizer_id: int) -> List[Event]:
        return [e for e in self._rows(self._events) if e.organizer_id == organizer_id]

    def get_upcoming_events(self, now: Optional[datetime] = None) -> List[Event]:
        """Events dated strictly after `now`, soonest first."""
        now = now or utcnow()
        upcoming = [e for e in self._rows(self._events) if e.date > now]
        return sorted(upcoming, key=lambda e: e.date)

    def create_event(self, data: Dict[str, Any]) -> Event:
        with self._lock:
            event = Event(
                id=next(self._event_ids),
                created_at=utcnow(),
                **_creatable(Event, data),
            )
            self._events[event.id] = event
            logging.info(f"[Storage] Created event {event.id} by organizer {event.organizer_id}")
            return event

    def update_event(self, event_id: int, changes: Dict[str, Any]) -> Optional[Event]:
        with self._lock:
            event = self._events.get(event_id)
            if not event:
                return None
            updated = event.merged(changes)
            self._events[event_id] = updated
            return updated

    # --- EVENT PARTICIPANTS ---
    def add_event_participant(self, data: Dict[str, Any]) -> EventParticipant:
        """
        Raises:
            AlreadyExistsError: The user already has a row for this event.
        """
        with self._lock:
            if self.get_event_participant(data["event_id"], data["user_id"]):
                raise AlreadyExistsError(
                    f"User {data['user_id']} already registered for event {data['event_id']}"
                )

            participant = EventParticipant(
                id=next(self._participant_ids),
                created_at=utcnow(),
                **_creatable(EventParticipant, data),
            )
            self._participants[participant.id] = participant
            return participant

    def get_event_participant(
        self, event_id: int, user_id: int
    ) -> Optional[EventParticipant]:
        return next(
            (
                p
                for p in self._rows(self._participants)
                if p.event_id == event_id and p.user_id == user_id
            ),
            None,
        )

    def get_event_participants(self, event_id: int) -> List[EventParticipant]:
        return [p for p in self._rows(self._participants) if p.event_id == event_id]

    def update_event_participant(
        self, participant_id: int, changes: Dict[str, Any]
    ) -> Optional[EventParticipant]:
        with self._lock:
            participant = self._participants.get(participant_id)
            if not participant:
                return None
            updated = participant.merged(changes)
            self._participants[participant_id] = updated
            return updated

    def record_attendance(
        self, event_id: int, user_id: int, points: int
    ) -> Optional[EventParticipant]:
        """
        Mark a registered user as attended and credit `points` to them.

        The status check, the status change and the points credit share one
        lock acquisition, so points are awarded at most once per user and
        event.

        Returns:
            EventParticipant | None: The updated row, or None when the user
            has no row for this event.

        Raises:
            AlreadyExistsError: Attendance was already recorded.
        """
        with self._lock:
            participant = self.get_event_participant(event_id, user_id)
            if not participant:
                return None
            if participant.status == ATTENDED:
                raise AlreadyExistsError(
                    f"Attendance already recorded for user {user_id} at event {event_id}"
                )

            updated = participant.merged({"status": ATTENDED})
            self._participants[participant.id] = updated

            user = self._users.get(user_id)
            if user:
                self._users[user_id] = user.merged({"points": user.points + points})
            logging.info(f"[Storage] User {user_id} attended event {event_id} (+{points} points)")
            return updated

    def get_user_events(self, user_id: int) -> List[Event]:
        event_ids = {p.event_id for p in self._rows(self._participants) if p.user_id == user_id}
        return [e for e in self._rows(self._events) if e.id in event_ids]

    # --- SAVED ORGANIZATIONS ---
    def save_organization(self, data: Dict[str, Any]) -> SavedOrganization:
        """
        Insert a follow link and bump the organization's follower count.

        The duplicate check and both writes happen under the same lock.

        Raises:
            AlreadyExistsError: The user already saved this organization.
        """
        with self._lock:
            if self.is_organization_saved(data["user_id"], data["organization_id"]):
                raise AlreadyExistsError(
                    f"User {data['user_id']} already saved organization {data['organization_id']}"
                )

            saved = SavedOrganization(
                id=next(self._saved_ids),
                created_at=utcnow(),
                **_creatable(SavedOrganization, data),
            )
            self._saved[saved.id] = saved

            organization = self._organizations.get(saved.organization_id)
            if organization:
                self._organizations[organization.id] = organization.merged(
                    {"followers": organization.followers + 1}
                )
            return saved

    def get_saved_organizations(self, user_id: int) -> List[Organization]:
        organization_ids = {s.organization_id for s in self._rows(self._saved) if s.user_id == user_id}
        return [o for o in self._rows(self._organizations) if o.id in organization_ids]

    def is_organization_saved(self, user_id: int, organization_id: int) -> bool:
        return any(
            s.user_id == user_id and s.organization_id == organization_id
            for s in self._rows(self._saved)
        )

    def unsave_organization(self, user_id: int, organization_id: int) -> None:
        """Remove a follow link if present; the follower count never drops below 0."""
        with self._lock:
            saved = next(
                (
                    s
                    for s in self._rows(self._saved)
                    if s.user_id == user_id and s.organization_id == organization_id
                ),
                None,
            )
            if not saved:
                return

            del self._saved[saved.id]

            organization = self._organizations.get(organization_id)
            if organization and organization.followers > 0:
                self._organizations[organization.id] = organization.merged(
                    {"followers": organization.followers - 1}
                )
