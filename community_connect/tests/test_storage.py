import threading
from datetime import datetime, timedelta, timezone

import pytest

from community_connect.storage.base import AlreadyExistsError, UsernameTakenError
from community_connect.storage.memory import MemStorage
from community_connect.storage.models import normalize_categories


def make_user(storage, username="alice", **extra):
    data = {
        "username": username,
        "password": "hash.salt",
        "name": username.title(),
        "email": f"{username}@example.com",
    }
    data.update(extra)
    return storage.create_user(data)


def make_org(storage, user_id, name="Green Earth", **extra):
    data = {
        "user_id": user_id,
        "name": name,
        "description": "Tree planting and clean-ups",
        "categories": "Environment",
    }
    data.update(extra)
    return storage.create_organization(data)


def make_event(storage, organizer_id, organization_id, date, title="Clean-up"):
    return storage.create_event({
        "organizer_id": organizer_id,
        "organization_id": organization_id,
        "title": title,
        "description": "Bring gloves",
        "date": date,
        "location": "Riverside Park",
        "points_value": 20,
    })


@pytest.fixture
def storage():
    return MemStorage()


def test_ids_are_sequential_per_entity(storage):
    alice = make_user(storage, "alice")
    bob = make_user(storage, "bob")
    org = make_org(storage, alice.id)

    assert (alice.id, bob.id) == (1, 2)
    assert org.id == 1


def test_create_user_sets_server_defaults(storage):
    user = make_user(storage, points=500, id=99)

    assert user.id == 1
    assert user.points == 0
    assert user.is_organizer is False
    assert user.created_at.tzinfo is not None


def test_username_lookup_is_case_insensitive(storage):
    user = make_user(storage, "Alice")

    assert storage.get_user_by_username("aLiCe") == user
    assert storage.get_user_by_username("carol") is None


def test_create_user_rejects_duplicate_username(storage):
    make_user(storage, "alice")

    with pytest.raises(UsernameTakenError):
        make_user(storage, "ALICE")


def test_concurrent_registrations_create_one_user(storage):
    results = []

    def register():
        try:
            results.append(make_user(storage, "racer"))
        except UsernameTakenError:
            results.append(None)

    threads = [threading.Thread(target=register) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len([r for r in results if r]) == 1


def test_update_merges_and_never_creates(storage):
    user = make_user(storage)

    updated = storage.update_user(user.id, {"bio": "Gardener", "id": 42})

    assert updated.id == user.id
    assert updated.bio == "Gardener"
    assert updated.name == user.name
    assert storage.update_user(999, {"bio": "ghost"}) is None
    assert storage.get_user(999) is None


def test_unknown_ids_return_none(storage):
    assert storage.get_user(1) is None
    assert storage.get_organization(1) is None
    assert storage.get_event(1) is None
    assert storage.update_event(1, {"title": "x"}) is None
    assert storage.update_organization(1, {"name": "x"}) is None


def test_search_organizations_matches_name_description_and_categories(storage):
    user = make_user(storage)
    green = make_org(storage, user.id, "Green Earth", categories="Environment, Parks")
    books = make_org(storage, user.id, "Book Club", description="Monthly reading group", categories="Literature")

    assert storage.search_organizations("EARTH") == [green]
    assert storage.search_organizations("reading") == [books]
    assert storage.search_organizations("parks") == [green]
    assert storage.search_organizations("chess") == []


def test_organization_categories_are_an_ordered_set(storage):
    user = make_user(storage)
    org = make_org(storage, user.id, categories=" Parks, parks,Environment,, ")

    assert org.categories == ("Parks", "Environment")
    assert org.to_dict()["categories"] == "Parks,Environment"

    updated = storage.update_organization(org.id, {"categories": ["Food", "Food", "Garden"]})
    assert updated.categories == ("Food", "Garden")


def test_normalize_categories_handles_none():
    assert normalize_categories(None) == ()


def test_upcoming_events_are_future_only_and_sorted(storage):
    now = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
    user = make_user(storage)
    org = make_org(storage, user.id)

    later = make_event(storage, user.id, org.id, now + timedelta(days=3), "Later")
    past = make_event(storage, user.id, org.id, now - timedelta(hours=1), "Past")
    sooner = make_event(storage, user.id, org.id, now + timedelta(hours=1), "Sooner")
    exactly_now = make_event(storage, user.id, org.id, now, "Now")

    upcoming = storage.get_upcoming_events(now=now)

    assert upcoming == [sooner, later]
    assert past not in upcoming
    assert exactly_now not in upcoming


def test_events_by_organizer_include_past_events(storage):
    now = datetime.now(timezone.utc)
    alice = make_user(storage, "alice")
    bob = make_user(storage, "bob")
    org = make_org(storage, alice.id)
    past = make_event(storage, alice.id, org.id, now - timedelta(days=1))

    assert storage.get_events_by_organizer_id(alice.id) == [past]
    assert storage.get_events_by_organizer_id(bob.id) == []


def test_participants_and_user_events(storage):
    now = datetime.now(timezone.utc)
    alice = make_user(storage, "alice")
    bob = make_user(storage, "bob")
    org = make_org(storage, alice.id)
    first = make_event(storage, alice.id, org.id, now + timedelta(days=1), "First")
    make_event(storage, alice.id, org.id, now + timedelta(days=2), "Second")

    participant = storage.add_event_participant({"event_id": first.id, "user_id": bob.id})

    assert participant.status == "registered"
    assert storage.get_event_participants(first.id) == [participant]
    assert storage.get_event_participant(first.id, bob.id) == participant
    assert storage.get_event_participant(first.id, alice.id) is None
    assert storage.get_user_events(bob.id) == [first]

    attended = storage.update_event_participant(participant.id, {"status": "attended"})
    assert attended.status == "attended"


def test_followers_track_saved_links(storage):
    alice = make_user(storage, "alice")
    bob = make_user(storage, "bob")
    carol = make_user(storage, "carol")
    org = make_org(storage, alice.id)

    def live_links():
        return sum(
            1 for u in (alice, bob, carol) if storage.is_organization_saved(u.id, org.id)
        )

    for user_id, action in [
        (bob.id, "save"),
        (carol.id, "save"),
        (bob.id, "unsave"),
        (alice.id, "save"),
        (carol.id, "unsave"),
        (carol.id, "unsave"),
    ]:
        if action == "save":
            storage.save_organization({"user_id": user_id, "organization_id": org.id})
        else:
            storage.unsave_organization(user_id, org.id)
        assert storage.get_organization(org.id).followers == live_links()

    assert storage.get_organization(org.id).followers == 1
    assert storage.get_saved_organizations(alice.id) == [storage.get_organization(org.id)]


def test_unsave_without_link_is_a_noop(storage):
    alice = make_user(storage)
    org = make_org(storage, alice.id)

    storage.unsave_organization(alice.id, org.id)
    storage.unsave_organization(alice.id, 999)

    assert storage.get_organization(org.id).followers == 0


def test_followers_never_go_negative(storage):
    alice = make_user(storage)
    org = make_org(storage, alice.id)
    storage.save_organization({"user_id": alice.id, "organization_id": org.id})
    storage.update_organization(org.id, {"followers": 0})

    storage.unsave_organization(alice.id, org.id)

    assert storage.get_organization(org.id).followers == 0


def run_concurrently(target, count=8):
    """Call `target` from `count` threads; return what each call produced."""
    results = []

    def worker():
        try:
            results.append(target())
        except AlreadyExistsError:
            results.append(None)

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results


def test_create_user_with_organization(storage):
    user = storage.create_user(
        {"username": "alice", "password": "hash.salt", "name": "Alice", "email": "a@example.com", "is_organizer": True},
        {"name": "Green Earth", "description": "Clean-ups", "categories": ["Environment"]},
    )

    organization = storage.get_organization_by_user_id(user.id)
    assert organization.name == "Green Earth"
    assert organization.categories == ("Environment",)


def test_failed_organization_leaves_no_user(storage, mocker):
    mocker.patch.object(storage, "_build_organization", side_effect=RuntimeError("boom"))

    with pytest.raises(RuntimeError):
        storage.create_user(
            {"username": "alice", "password": "hash.salt", "name": "Alice", "email": "a@example.com", "is_organizer": True},
            {"name": "Green Earth", "description": "Clean-ups"},
        )

    assert storage.get_user_by_username("alice") is None
    assert storage.get_all_organizations() == []


def test_duplicate_save_is_rejected(storage):
    alice = make_user(storage)
    org = make_org(storage, alice.id)
    storage.save_organization({"user_id": alice.id, "organization_id": org.id})

    with pytest.raises(AlreadyExistsError):
        storage.save_organization({"user_id": alice.id, "organization_id": org.id})

    assert storage.get_organization(org.id).followers == 1


def test_concurrent_saves_count_one_follower(storage):
    alice = make_user(storage)
    org = make_org(storage, alice.id)

    results = run_concurrently(
        lambda: storage.save_organization({"user_id": alice.id, "organization_id": org.id})
    )

    assert len([r for r in results if r]) == 1
    assert storage.get_organization(org.id).followers == 1
    assert storage.get_saved_organizations(alice.id) == [storage.get_organization(org.id)]


def test_concurrent_rsvps_store_one_row(storage):
    alice = make_user(storage, "alice")
    bob = make_user(storage, "bob")
    org = make_org(storage, alice.id)
    event = make_event(storage, alice.id, org.id, datetime.now(timezone.utc) + timedelta(days=1))

    results = run_concurrently(
        lambda: storage.add_event_participant({"event_id": event.id, "user_id": bob.id})
    )

    assert len([r for r in results if r]) == 1
    assert len(storage.get_event_participants(event.id)) == 1


def test_record_attendance_credits_points_once(storage):
    alice = make_user(storage, "alice")
    bob = make_user(storage, "bob")
    org = make_org(storage, alice.id)
    event = make_event(storage, alice.id, org.id, datetime.now(timezone.utc) + timedelta(days=1))

    assert storage.record_attendance(event.id, bob.id, 20) is None

    storage.add_event_participant({"event_id": event.id, "user_id": bob.id})
    attended = storage.record_attendance(event.id, bob.id, 20)

    assert attended.status == "attended"
    assert storage.get_user(bob.id).points == 20

    with pytest.raises(AlreadyExistsError):
        storage.record_attendance(event.id, bob.id, 20)
    assert storage.get_user(bob.id).points == 20


def test_concurrent_attendance_credits_points_once(storage):
    alice = make_user(storage, "alice")
    bob = make_user(storage, "bob")
    org = make_org(storage, alice.id)
    event = make_event(storage, alice.id, org.id, datetime.now(timezone.utc) + timedelta(days=1))
    storage.add_event_participant({"event_id": event.id, "user_id": bob.id})

    results = run_concurrently(lambda: storage.record_attendance(event.id, bob.id, 20))

    assert len([r for r in results if r]) == 1
    assert storage.get_user(bob.id).points == 20


def test_normalize_categories_splits_comma_joined_list_entries():
    categories = normalize_categories(["Arts, Culture", "Parks", "arts"])

    assert categories == ("Arts", "Culture", "Parks")
    assert normalize_categories(",".join(categories)) == categories
