import os

import pytest

# Cheap Argon2 parameters and a fixed secret for tests; must be set before
# the config module is imported.
os.environ["SESSION_SECRET"] = "test_secret"
os.environ["PASSWORD_TIME_COST"] = "1"
os.environ["PASSWORD_MEMORY_COST"] = "1024"

from community_connect.gateway.server import create_app  # noqa: E402
from community_connect.storage.memory import MemStorage  # noqa: E402

ORGANIZATION = {
    "name": "Green Earth",
    "description": "Neighbourhood clean-ups and tree planting.",
    "website": "https://greenearth.example",
    "email": "hello@greenearth.example",
    "categories": "Environment, Volunteering",
}


def user_payload(username, **overrides):
    payload = {
        "username": username,
        "password": "secret1",
        "name": username.title(),
        "email": f"{username}@example.com",
    }
    payload.update(overrides)
    return payload


def organizer_payload(username, organization=None, **overrides):
    return user_payload(
        username,
        isOrganizer=True,
        organization=organization or ORGANIZATION,
        **overrides,
    )


@pytest.fixture
def storage():
    return MemStorage()


@pytest.fixture
def app(storage):
    return create_app({"TESTING": True}, storage=storage)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def organizer_client(app):
    """A client logged in as organizer 'alice' who owns 'Green Earth'."""
    c = app.test_client()
    response = c.post("/api/register", json=organizer_payload("alice"))
    assert response.status_code == 201
    return c


@pytest.fixture
def user_client(app):
    """A client logged in as regular user 'bob'."""
    c = app.test_client()
    response = c.post("/api/register", json=user_payload("bob"))
    assert response.status_code == 201
    return c
