from conftest import register


def test_register_logs_the_user_in_and_hides_the_password(client):
    user = register(client, "ada")
    assert user["username"] == "ada"
    assert user["points"] == 0
    assert "password" not in user

    me = client.get("/api/user")
    assert me.status_code == 200
    assert me.json()["id"] == user["id"]


def test_register_rejects_taken_username_in_any_case(client, other_client):
    register(client, "ada")
    resp = other_client.post("/api/register", json={
        "username": "ADA",
        "password": "another-secret",
        "email": "someone@uni.edu",
        "display_name": "Other",
        "institution": "State University",
    })
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Username already exists"


def test_register_rejects_taken_email(client, other_client):
    register(client, "ada", email="ada@uni.edu")
    resp = other_client.post("/api/register", json={
        "username": "grace",
        "password": "another-secret",
        "email": "Ada@Uni.edu",
        "display_name": "Grace",
        "institution": "State University",
    })
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Email already exists"


def test_register_validates_payload(client):
    resp = client.post("/api/register", json={"username": "ada", "password": "short"})
    assert resp.status_code == 422


def test_login_by_username_or_email(client, other_client):
    register(client, "ada", password="correct-horse")
    client.post("/api/logout")

    by_name = other_client.post("/api/login", json={"username": "Ada", "password": "correct-horse"})
    assert by_name.status_code == 200
    assert by_name.json()["username"] == "ada"

    by_email = client.post("/api/login", json={"username": "ada@uni.edu", "password": "correct-horse"})
    assert by_email.status_code == 200
    assert client.get("/api/user").status_code == 200


def test_login_with_bad_credentials(client):
    register(client, "ada", password="correct-horse")
    client.post("/api/logout")
    assert client.post("/api/login", json={"username": "ada", "password": "wrong-horse"}).status_code == 401
    assert client.post("/api/login", json={"username": "nobody", "password": "x"}).status_code == 401
    assert client.get("/api/user").status_code == 401


def test_logout_clears_the_session(client):
    register(client)
    assert client.post("/api/logout").status_code == 200
    assert client.get("/api/user").status_code == 401


def test_update_own_profile(client):
    user = register(client, "ada")
    resp = client.patch(f"/api/user/{user['id']}", json={"display_name": "Ada L.", "bio": "Engines", "points": 500})
    assert resp.status_code == 200
    body = resp.json()
    assert body["display_name"] == "Ada L."
    assert body["bio"] == "Engines"
    assert body["points"] == 0


def test_profile_bio_can_be_cleared_but_required_fields_cannot(client):
    user = register(client, "ada")
    client.patch(f"/api/user/{user['id']}", json={"bio": "Engines", "year_of_study": 2})
    cleared = client.patch(f"/api/user/{user['id']}", json={"bio": None, "year_of_study": None})
    assert cleared.status_code == 200
    assert cleared.json()["bio"] is None
    assert cleared.json()["year_of_study"] is None
    assert cleared.json()["display_name"] == user["display_name"]

    assert client.patch(f"/api/user/{user['id']}", json={"display_name": None}).status_code == 422
    assert client.patch(f"/api/user/{user['id']}", json={"points": None}).status_code == 422


def test_cannot_update_someone_elses_profile(client, other_client):
    ada = register(client, "ada")
    register(other_client, "grace")
    assert other_client.patch(f"/api/user/{ada['id']}", json={"bio": "hi"}).status_code == 403


def test_profile_email_must_stay_unique(client, other_client):
    register(client, "ada")
    grace = register(other_client, "grace")
    resp = other_client.patch(f"/api/user/{grace['id']}", json={"email": "ada@uni.edu"})
    assert resp.status_code == 400


def test_protected_routes_need_a_session(client):
    assert client.post("/api/papers", json={}).status_code == 401
    assert client.get("/api/sessions/upcoming").status_code == 401
    assert client.get("/api/groups/user/1").status_code == 401


def test_health(client):
    assert client.get("/healthz").json() == {"ok": True, "app": "StudySphere"}
