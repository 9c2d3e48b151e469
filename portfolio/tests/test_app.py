import unittest
from datetime import datetime

from fastapi.testclient import TestClient

from portfolio.app import create_app
from portfolio.auth import Claims, InMemorySessionStore, SqlSessionStore, establish_session
from portfolio.config import Settings
from portfolio.db import InMemoryDbClient, PostgresDbClient
from portfolio.errors import TransportError
from portfolio.storage import InMemoryMediaStorage

ADMIN = Claims(sub="admin-1", email="admin@example.com", first_name="Ada")

PROJECT = {
    "title": "My First Project",
    "description": "d",
    "content": "c",
    "category": "Web",
    "tags": ["Python", "FastAPI"],
}

CONTACT = {
    "name": "Grace",
    "email": "grace@example.com",
    "subject": "Hello",
    "message": "Let's talk",
}


def make_settings(**overrides):
    values = {"use_in_memory_backends": True, "environment": "test"}
    values.update(overrides)
    return Settings(**values)


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        self.settings = make_settings()
        self.db = InMemoryDbClient()
        self.storage = InMemoryMediaStorage()
        self.sessions = InMemorySessionStore()
        self.client = TestClient(
            create_app(
                self.settings,
                db=self.db,
                media_storage=self.storage,
                sessions=self.sessions,
            )
        )

    def login(self, claims=ADMIN):
        record = establish_session(self.sessions, self.db, claims, ttl_seconds=60)
        self.client.cookies.set(self.settings.session_cookie_name, record.sid)
        return record

    def test_health(self):
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_admin_routes_require_session(self):
        for method, path in [
            ("get", "/api/admin/projects"),
            ("post", "/api/admin/projects"),
            ("get", "/api/admin/media"),
            ("get", "/api/admin/contacts"),
            ("get", "/api/auth/user"),
        ]:
            response = getattr(self.client, method)(path)
            self.assertEqual(response.status_code, 401, path)
            self.assertEqual(response.json()["error"]["code"], "AUTHENTICATION_ERROR")

    def test_unknown_session_cookie_is_rejected(self):
        self.client.cookies.set(self.settings.session_cookie_name, "forged")
        self.assertEqual(self.client.get("/api/admin/projects").status_code, 401)

    def test_current_user(self):
        self.login()
        response = self.client.get("/api/auth/user")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["id"], "admin-1")
        self.assertEqual(body["firstName"], "Ada")
        self.assertIn("createdAt", body)

    def test_project_lifecycle(self):
        self.login()
        created = self.client.post("/api/admin/projects", json=PROJECT)
        self.assertEqual(created.status_code, 201)
        project = created.json()
        self.assertEqual(project["id"], 1)
        self.assertEqual(project["slug"], "my-first-project")
        self.assertEqual(project["status"], "draft")
        self.assertEqual(project["authorId"], "admin-1")
        self.assertEqual(project["tags"], ["Python", "FastAPI"])

        # Drafts stay off the public site.
        self.assertEqual(self.client.get("/api/projects").json(), [])
        self.assertEqual(
            self.client.get("/api/projects/my-first-project").status_code, 404
        )

        updated = self.client.put("/api/admin/projects/1", json={"status": "published"})
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()["status"], "published")
        body = updated.json()
        self.assertGreater(
            datetime.fromisoformat(body["updatedAt"].replace("Z", "+00:00")),
            datetime.fromisoformat(body["createdAt"].replace("Z", "+00:00")),
        )

        public = self.client.get("/api/projects")
        self.assertEqual([p["id"] for p in public.json()], [1])
        by_slug = self.client.get("/api/projects/my-first-project")
        self.assertEqual(by_slug.status_code, 200)
        self.assertEqual(by_slug.json()["title"], "My First Project")

        self.assertEqual(self.client.delete("/api/admin/projects/1").status_code, 204)
        self.assertEqual(self.client.get("/api/admin/projects").json(), [])
        self.assertEqual(self.client.delete("/api/admin/projects/1").status_code, 204)

    def test_admin_listing_includes_drafts_and_filters(self):
        self.login()
        self.client.post("/api/admin/projects", json=PROJECT)
        self.client.post(
            "/api/admin/projects",
            json=dict(PROJECT, title="Second", status="published"),
        )
        everything = self.client.get("/api/admin/projects").json()
        self.assertEqual([p["slug"] for p in everything], ["second", "my-first-project"])
        drafts = self.client.get("/api/admin/projects", params={"status": "draft"}).json()
        self.assertEqual([p["slug"] for p in drafts], ["my-first-project"])

    def test_get_project_by_id(self):
        self.login()
        self.client.post("/api/admin/projects", json=PROJECT)
        self.assertEqual(self.client.get("/api/admin/projects/1").json()["slug"], "my-first-project")
        missing = self.client.get("/api/admin/projects/9")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json()["error"]["code"], "NOT_FOUND")

    def test_unpublished_slug_uses_error_envelope(self):
        response = self.client.get("/api/projects/nothing-here")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["code"], "NOT_FOUND")

    def test_colliding_title_is_a_conflict(self):
        self.login()
        self.client.post("/api/admin/projects", json=PROJECT)
        response = self.client.post(
            "/api/admin/projects", json=dict(PROJECT, title="My First Project!")
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"]["code"], "CONFLICT")

    def test_retitling_rederives_slug(self):
        self.login()
        self.client.post("/api/admin/projects", json=PROJECT)
        response = self.client.put("/api/admin/projects/1", json={"title": "Renamed Work"})
        self.assertEqual(response.json()["slug"], "renamed-work")
        self.assertEqual(response.json()["description"], "d")

    def test_update_unknown_project_is_404(self):
        self.login()
        response = self.client.put("/api/admin/projects/77", json={"status": "published"})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["code"], "NOT_FOUND")

    def test_invalid_project_body_is_400(self):
        self.login()
        response = self.client.post("/api/admin/projects", json={"title": "No body"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "VALIDATION_ERROR")

        response = self.client.post(
            "/api/admin/projects", json=dict(PROJECT, status="archived")
        )
        self.assertEqual(response.status_code, 400)

    def test_contact_submission_flow(self):
        response = self.client.post("/api/contact", json=dict(CONTACT, status="replied"))
        self.assertEqual(response.status_code, 201)
        contact = response.json()
        self.assertEqual(contact["status"], "new")

        self.login()
        listing = self.client.get("/api/admin/contacts").json()
        self.assertEqual([c["id"] for c in listing], [contact["id"]])

        patched = self.client.patch(
            f"/api/admin/contacts/{contact['id']}", json={"status": "read"}
        )
        self.assertEqual(patched.status_code, 204)
        self.assertEqual(self.client.get("/api/admin/contacts").json()[0]["status"], "read")

        missing = self.client.patch("/api/admin/contacts/99", json={"status": "read"})
        self.assertEqual(missing.status_code, 204)

    def test_contact_requires_fields(self):
        response = self.client.post("/api/contact", json={"name": "Grace"})
        self.assertEqual(response.status_code, 400)

    def test_media_upload_and_delete(self):
        self.login()
        response = self.client.post(
            "/api/admin/media",
            files={"file": ("photo.png", b"\x89PNG fake image", "image/png")},
            data={"altText": "A photo"},
        )
        self.assertEqual(response.status_code, 201)
        media = response.json()
        self.assertEqual(media["originalName"], "photo.png")
        self.assertEqual(media["mimeType"], "image/png")
        self.assertEqual(media["size"], str(len(b"\x89PNG fake image")))
        self.assertEqual(media["altText"], "A photo")
        self.assertEqual(media["uploadedBy"], "admin-1")
        self.assertTrue(media["url"].endswith(media["filename"]))
        self.assertIn(media["filename"], self.storage.stored_objects)

        listing = self.client.get("/api/admin/media").json()
        self.assertEqual([m["id"] for m in listing], [media["id"]])

        self.assertEqual(
            self.client.delete(f"/api/admin/media/{media['id']}").status_code, 204
        )
        self.assertNotIn(media["filename"], self.storage.stored_objects)
        self.assertEqual(
            self.client.delete(f"/api/admin/media/{media['id']}").status_code, 204
        )

    def test_media_upload_rejects_disallowed_type(self):
        self.login()
        response = self.client.post(
            "/api/admin/media",
            files={"file": ("tool.exe", b"MZ", "application/octet-stream")},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.storage.stored_objects, {})

    def test_media_upload_enforces_size_limit(self):
        client = TestClient(
            create_app(
                make_settings(max_upload_bytes=4),
                db=self.db,
                media_storage=self.storage,
                sessions=self.sessions,
            )
        )
        record = establish_session(self.sessions, self.db, ADMIN, ttl_seconds=60)
        client.cookies.set(self.settings.session_cookie_name, record.sid)
        response = client.post(
            "/api/admin/media",
            files={"file": ("photo.png", b"x" * 4096, "image/png")},
        )
        self.assertEqual(response.status_code, 400)
        # Reading stops one byte past the limit.
        self.assertEqual(response.json()["error"]["details"]["size"], 5)
        self.assertEqual(self.storage.stored_objects, {})

    def test_logout_ends_session(self):
        record = self.login()
        self.assertEqual(self.client.post("/api/logout").status_code, 204)
        self.assertIsNone(self.sessions.get(record.sid))
        self.client.cookies.set(self.settings.session_cookie_name, record.sid)
        self.assertEqual(self.client.get("/api/admin/projects").status_code, 401)


class DevBypassTests(unittest.TestCase):
    def test_development_bypass_uses_developer_identity(self):
        db = InMemoryDbClient()
        client = TestClient(
            create_app(
                make_settings(environment="development", dev_auth_bypass=True),
                db=db,
            )
        )
        response = client.get("/api/auth/user")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["id"], "mock-user-123")
        self.assertEqual(db.get_user("mock-user-123").first_name, "Developer")

    def test_logout_ends_developer_identity_until_login(self):
        client = TestClient(
            create_app(make_settings(environment="development", dev_auth_bypass=True))
        )
        self.assertEqual(client.get("/api/auth/user").status_code, 200)

        self.assertEqual(client.post("/api/logout").status_code, 204)
        self.assertEqual(client.get("/api/auth/user").status_code, 401)
        self.assertEqual(client.get("/api/admin/projects").status_code, 401)

        self.assertEqual(client.post("/api/login").status_code, 204)
        self.assertEqual(client.get("/api/auth/user").status_code, 200)

    def test_bypass_is_ignored_outside_development(self):
        client = TestClient(
            create_app(make_settings(environment="production", dev_auth_bypass=True))
        )
        self.assertEqual(client.get("/api/auth/user").status_code, 401)
        self.assertEqual(client.post("/api/login").status_code, 404)


class UnreachableDbClient(InMemoryDbClient):
    def get_projects(self, status=None):
        raise TransportError(details={"reason": "connection refused"})


class StorageOutageTests(unittest.TestCase):
    def test_transport_error_is_service_unavailable(self):
        client = TestClient(create_app(make_settings(), db=UnreachableDbClient()))
        response = client.get("/api/projects")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["error"]["code"], "SERVICE_UNAVAILABLE")


class SeededAppTests(unittest.TestCase):
    def test_sample_projects_are_published(self):
        client = TestClient(create_app(make_settings(seed_sample_data=True)))
        projects = client.get("/api/projects").json()
        self.assertEqual(len(projects), 3)
        self.assertTrue(all(p["status"] == "published" for p in projects))
        slugs = {p["slug"] for p in projects}
        self.assertIn("modern-ecommerce-platform", slugs)


class SqlBackedAppTests(unittest.TestCase):
    def setUp(self):
        self.db = PostgresDbClient("sqlite+pysqlite:///:memory:")
        self.settings = make_settings(use_in_memory_backends=False)
        self.client = TestClient(
            create_app(self.settings, db=self.db, media_storage=InMemoryMediaStorage())
        )

    def tearDown(self):
        self.db.close()

    def test_sessions_live_in_the_database(self):
        sessions = self.client.app.state.sessions
        self.assertIsInstance(sessions, SqlSessionStore)
        record = establish_session(sessions, self.db, ADMIN, ttl_seconds=60)
        self.client.cookies.set(self.settings.session_cookie_name, record.sid)

        created = self.client.post("/api/admin/projects", json=PROJECT)
        self.assertEqual(created.status_code, 201)
        duplicate = self.client.post("/api/admin/projects", json=PROJECT)
        self.assertEqual(duplicate.status_code, 409)
        self.assertEqual(len(self.client.get("/api/admin/projects").json()), 1)


if __name__ == "__main__":
    unittest.main()
