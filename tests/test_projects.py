"""
Tests for project CRUD and the project password gate
"""


def test_create_and_list_projects(client):
    resp = client.post("/api/projects", json={"title": "First", "slug": "first", "description": "old"})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "slug": "first"}

    resp = client.post("/api/projects", json={"title": "Second", "slug": "second", "password": "pw"})
    assert resp.status_code == 200

    resp = client.get("/api/projects")
    assert resp.status_code == 200
    projects = {p["slug"]: p for p in resp.json()}
    assert set(projects) == {"first", "second"}

    second, first = projects["second"], projects["first"]
    assert second["locked"] is True
    assert second["sessionCount"] == 0
    assert first["locked"] is False
    assert first["description"] == "old"
    assert "passwordHash" not in second


def test_create_project_requires_title_and_slug(client):
    assert client.post("/api/projects", json={"title": "No slug"}).status_code == 400
    assert client.post("/api/projects", json={"slug": "no-title"}).status_code == 400


def test_create_project_rejects_duplicate_and_reserved_slugs(client, project):
    resp = client.post("/api/projects", json={"title": "Again", "slug": project})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Project slug already exists"

    resp = client.post("/api/projects", json={"title": "Api", "slug": "api"})
    assert resp.status_code == 400


def test_create_project_rejects_unsafe_slug(client):
    resp = client.post("/api/projects", json={"title": "Bad", "slug": "../etc"})
    assert resp.status_code == 422


def test_project_is_persisted_to_json(client, store):
    client.post("/api/projects", json={"title": "Kept", "slug": "kept", "password": "pw"})
    raw = store.path.read_text(encoding="utf-8")
    assert '"kept"' in raw
    # sha256("pw")
    assert "30c952fab122c3f9759f02a6d95c3758b246b4fee239957b2d4fee46e26170c4" in raw


def test_unlock_project(client, admin_headers):
    client.post("/api/projects", json={"title": "Locked", "slug": "locked", "password": "secret"})

    resp = client.post("/api/projects/locked/unlock", json={"password": "nope"})
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Wrong password"

    resp = client.post("/api/projects/locked/unlock", json={"password": "secret"})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}

    resp = client.post("/api/projects/locked/unlock", json={}, headers=admin_headers)
    assert resp.json() == {"ok": True, "admin": True}


def test_unlock_open_project_always_succeeds(client, project):
    resp = client.post(f"/api/projects/{project}/unlock", json={"password": "anything"})
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


def test_unlock_unknown_project(client):
    resp = client.post("/api/projects/missing/unlock", json={})
    assert resp.status_code == 404


def test_delete_open_project(client, project):
    resp = client.delete(f"/api/projects/{project}")
    assert resp.status_code == 200
    assert client.get("/api/projects").json() == []


def test_delete_locked_project_needs_password_or_admin(client, admin_headers):
    client.post("/api/projects", json={"title": "Locked", "slug": "locked", "password": "secret"})

    assert client.delete("/api/projects/locked").status_code == 403
    resp = client.delete("/api/projects/locked", headers={"X-Project-Password": "wrong"})
    assert resp.status_code == 403

    resp = client.delete("/api/projects/locked", headers={"X-Project-Password": "secret"})
    assert resp.status_code == 200

    client.post("/api/projects", json={"title": "Locked", "slug": "locked", "password": "secret"})
    resp = client.delete("/api/projects/locked", headers=admin_headers)
    assert resp.status_code == 200


def test_wrong_admin_password_is_not_admin(client):
    client.post("/api/projects", json={"title": "Locked", "slug": "locked", "password": "secret"})
    resp = client.delete("/api/projects/locked", headers={"X-Admin-Password": "admin"})
    assert resp.status_code == 403


def test_delete_unknown_project(client):
    assert client.delete("/api/projects/ghost").status_code == 404
