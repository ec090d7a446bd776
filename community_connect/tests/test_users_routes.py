def test_update_profile(user_client):
    response = user_client.put("/api/user/profile", json={
        "name": "Bob Builder",
        "bio": "Fixes things",
        "interests": "Carpentry, Cycling",
        "points": 9000,
    })

    assert response.status_code == 200
    data = response.get_json()
    assert data["name"] == "Bob Builder"
    assert data["bio"] == "Fixes things"
    assert data["interests"] == "Carpentry, Cycling"
    assert data["points"] == 0
    assert "password" not in data


def test_update_profile_partial(user_client):
    response = user_client.put("/api/user/profile", json={"bio": "Runner"})

    data = response.get_json()
    assert data["bio"] == "Runner"
    assert data["name"] == "Bob"


def test_update_profile_rejects_blank_name(user_client):
    response = user_client.put("/api/user/profile", json={"name": "  "})

    assert response.status_code == 400


def test_update_profile_requires_fields(user_client):
    response = user_client.put("/api/user/profile", json={"points": 5})

    assert response.status_code == 400
    assert response.get_json()["message"] == "No valid fields provided"


def test_update_profile_user_vanished(user_client, storage, mocker):
    mocker.patch.object(storage, "update_user", return_value=None)

    response = user_client.put("/api/user/profile", json={"bio": "Runner"})

    assert response.status_code == 404


def test_user_routes_require_session(client):
    assert client.put("/api/user/profile", json={"bio": "x"}).status_code == 401
    assert client.get("/api/user/events").status_code == 401
    assert client.get("/api/user/saved-organizations").status_code == 401


def test_stale_session_is_rejected(user_client, storage, mocker):
    mocker.patch.object(storage, "get_user", return_value=None)

    response = user_client.get("/api/user/events")

    assert response.status_code == 401


def test_unknown_route_returns_json(client):
    response = client.get("/api/nowhere")

    assert response.status_code == 404
    assert "message" in response.get_json()


def test_health(client):
    assert client.get("/health").get_json() == {"status": "ok"}
