import base64
import unittest
from datetime import datetime, timedelta, timezone
from unittest import mock

from fastapi.testclient import TestClient

from backend import dependencies
from backend.app import create_app
from backend.auth import PasswordHasher, TokenService
from backend.config import Settings
from backend.db import InMemoryDbClient, SqlDbClient
from backend.dependencies import get_db_client, get_password_hasher, get_token_service

SECRET = "test-secret"


def parse_timestamp(value):
    """Parse the API's ISO timestamps, which may end in "Z"."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class TickingClock:
    """Returns a strictly increasing time on every call."""

    def __init__(self):
        self.now = datetime(2030, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(seconds=5)
        return self.now


def build_client(db=None, **settings):
    db = db or InMemoryDbClient(clock=TickingClock())
    app = create_app(Settings(jwt_secret=SECRET, **settings))
    app.dependency_overrides[get_db_client] = lambda: db
    app.dependency_overrides[get_password_hasher] = lambda: PasswordHasher(rounds=4)
    app.dependency_overrides[get_token_service] = lambda: TokenService(SECRET)
    return TestClient(app), db


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        self.client, self.db = build_client()

    def register(self, username="ann", password="pw123456"):
        response = self.client.post(
            "/api/auth/register", json={"username": username, "password": password}
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["token"]

    def auth(self, token):
        return {"Authorization": f"Bearer {token}"}

    def create(self, token, kind="note", title="Hi", body="<p>hello</p>"):
        response = self.client.post(
            "/api/entries",
            json={"kind": kind, "title": title, "body": body},
            headers=self.auth(token),
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    # auth

    def test_register_returns_token_and_username(self):
        response = self.client.post(
            "/api/auth/register", json={"username": "ann", "password": "pw123456"}
        )
        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertEqual(payload["username"], "ann")
        claims = TokenService(SECRET).decode(payload["token"])
        self.assertEqual(claims.username, "ann")

    def test_register_then_login(self):
        self.register()
        response = self.client.post(
            "/api/auth/login", json={"username": "ann", "password": "pw123456"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["username"], "ann")

    def test_register_and_login_with_long_password(self):
        password = "p" * 80
        self.register(password=password)
        response = self.client.post(
            "/api/auth/login", json={"username": "ann", "password": password}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["username"], "ann")

    def test_register_duplicate_is_conflict(self):
        self.register()
        response = self.client.post(
            "/api/auth/register", json={"username": "ann", "password": "other-pw"}
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json(), {"error": "username taken"})

    def test_register_missing_fields(self):
        response = self.client.post("/api/auth/register", json={"username": "ann"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("error", response.json())

    def test_login_failures_are_indistinguishable(self):
        self.register()
        wrong_password = self.client.post(
            "/api/auth/login", json={"username": "ann", "password": "nope-nope"}
        )
        unknown_user = self.client.post(
            "/api/auth/login", json={"username": "bob", "password": "pw123456"}
        )
        self.assertEqual(wrong_password.status_code, 401)
        self.assertEqual(unknown_user.status_code, 401)
        self.assertEqual(wrong_password.json(), unknown_user.json())

    def test_login_missing_fields(self):
        response = self.client.post("/api/auth/login", json={"password": "x"})
        self.assertEqual(response.status_code, 400)

    # entries

    def test_create_entry_example(self):
        token = self.register()
        entry = self.create(token)
        self.assertEqual(entry["kind"], "note")
        self.assertEqual(entry["title"], "Hi")
        self.assertEqual(entry["body"], "<p>hello</p>")
        self.assertEqual(entry["ownerName"], "ann")
        self.assertTrue(entry["id"])
        self.assertEqual(entry["createdAt"], entry["updatedAt"])

    def test_create_requires_token(self):
        response = self.client.post(
            "/api/entries", json={"kind": "note", "body": "<p>x</p>"}
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "missing auth"})

    def test_create_with_malformed_header(self):
        response = self.client.post(
            "/api/entries",
            json={"kind": "note", "body": "<p>x</p>"},
            headers={"Authorization": "Bearer"},
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "malformed auth"})

    def test_create_with_forged_token(self):
        forged = TokenService("another-secret").issue("someone", "mallory")
        response = self.client.post(
            "/api/entries",
            json={"kind": "note", "body": "<p>x</p>"},
            headers=self.auth(forged),
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"error": "invalid token"})

    def test_create_rejects_missing_body_and_unknown_kind(self):
        token = self.register()
        for payload in (
            {"kind": "note", "body": ""},
            {"kind": "note"},
            {"body": "<p>x</p>"},
            {"kind": "rant", "body": "<p>x</p>"},
        ):
            response = self.client.post(
                "/api/entries", json=payload, headers=self.auth(token)
            )
            self.assertEqual(response.status_code, 400, payload)

    def test_create_strips_script_tags(self):
        token = self.register()
        entry = self.create(
            token, body='<p onclick="x()">hi</p><script>alert(1)</script><img src="/a.png">'
        )
        self.assertNotIn("<script", entry["body"])
        self.assertNotIn("onclick", entry["body"])
        self.assertIn("<p>hi</p>", entry["body"])
        self.assertIn('<img src="/a.png">', entry["body"])

    def test_body_that_sanitizes_to_nothing_is_rejected(self):
        token = self.register()
        response = self.client.post(
            "/api/entries",
            json={"kind": "note", "body": "<script>alert(1)</script>"},
            headers=self.auth(token),
        )
        self.assertEqual(response.status_code, 400)

    def test_list_pagination_newest_first(self):
        token = self.register()
        first = self.create(token, title="first")
        second = self.create(token, title="second")
        self.create(token, kind="thought", title="other kind")

        response = self.client.get(
            "/api/entries", params={"kind": "note", "page": 0, "limit": 1}
        )
        self.assertEqual(response.status_code, 200)
        items = response.json()
        self.assertEqual([item["id"] for item in items], [second["id"]])

        page_one = self.client.get(
            "/api/entries", params={"kind": "note", "page": 1, "limit": 1}
        ).json()
        self.assertEqual([item["id"] for item in page_one], [first["id"]])

        everything = self.client.get("/api/entries").json()
        self.assertEqual(len(everything), 3)

    def test_list_never_exceeds_limit(self):
        token = self.register()
        for i in range(5):
            self.create(token, title=f"n{i}")
        for limit in (1, 2, 3):
            items = self.client.get("/api/entries", params={"limit": limit}).json()
            self.assertEqual(len(items), limit)
        tail = self.client.get("/api/entries", params={"page": 2, "limit": 2}).json()
        self.assertEqual([item["title"] for item in tail], ["n0"])

    def test_list_rejects_non_integer_page(self):
        response = self.client.get("/api/entries", params={"page": "two"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("error", response.json())

    def test_search_is_case_insensitive_substring(self):
        token = self.register()
        entry = self.create(token, title="Hi", body="<p>Hello there</p>")
        hits = self.client.get("/api/entries", params={"q": "hel"}).json()
        self.assertEqual([item["id"] for item in hits], [entry["id"]])
        title_hits = self.client.get("/api/entries", params={"q": "hI"}).json()
        self.assertEqual(len(title_hits), 1)
        self.assertEqual(self.client.get("/api/entries", params={"q": "xyz"}).json(), [])

    def test_search_treats_query_literally(self):
        token = self.register()
        self.create(token, body="<p>cost (approx) 5.00</p>")
        self.assertEqual(len(self.client.get("/api/entries", params={"q": "(approx)"}).json()), 1)
        self.assertEqual(self.client.get("/api/entries", params={"q": "5.0.*"}).json(), [])

    def test_edit_by_owner(self):
        token = self.register()
        entry = self.create(token)
        response = self.client.put(
            f"/api/entries/{entry['id']}",
            json={"title": "", "body": "<p>changed</p><script>x</script>"},
            headers=self.auth(token),
        )
        self.assertEqual(response.status_code, 200)
        updated = response.json()
        self.assertEqual(updated["title"], "")
        self.assertEqual(updated["body"], "<p>changed</p>")
        self.assertEqual(updated["kind"], "note")
        self.assertEqual(updated["ownerId"], entry["ownerId"])
        self.assertGreaterEqual(
            parse_timestamp(updated["updatedAt"]),
            parse_timestamp(entry["updatedAt"]),
        )
        self.assertEqual(updated["createdAt"], entry["createdAt"])

    def test_edit_keeps_fields_not_provided(self):
        token = self.register()
        entry = self.create(token)
        updated = self.client.put(
            f"/api/entries/{entry['id']}", json={}, headers=self.auth(token)
        ).json()
        self.assertEqual(updated["title"], "Hi")
        self.assertEqual(updated["body"], "<p>hello</p>")

    def test_edit_and_delete_by_non_owner_are_forbidden(self):
        owner = self.register("ann")
        intruder = self.register("bob")
        entry = self.create(owner)

        edit = self.client.put(
            f"/api/entries/{entry['id']}", json={"title": "mine"}, headers=self.auth(intruder)
        )
        self.assertEqual(edit.status_code, 403)
        self.assertEqual(edit.json(), {"error": "not owner"})

        delete = self.client.delete(f"/api/entries/{entry['id']}", headers=self.auth(intruder))
        self.assertEqual(delete.status_code, 403)
        self.assertIsNotNone(self.db.get_entry(entry["id"]))

    def test_edit_unknown_entry(self):
        token = self.register()
        response = self.client.put(
            "/api/entries/missing", json={"title": "x"}, headers=self.auth(token)
        )
        self.assertEqual(response.status_code, 404)

    def test_delete_is_not_idempotent(self):
        token = self.register()
        entry = self.create(token)
        first = self.client.delete(f"/api/entries/{entry['id']}", headers=self.auth(token))
        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.json(), {"ok": True})
        second = self.client.delete(f"/api/entries/{entry['id']}", headers=self.auth(token))
        self.assertEqual(second.status_code, 404)

    # images

    def test_image_upload_and_fetch(self):
        token = self.register()
        raw = b"\x89PNG\r\n\x1a\nfake"
        response = self.client.post(
            "/api/images-json",
            json={"mime": "image/png", "data": base64.b64encode(raw).decode()},
            headers=self.auth(token),
        )
        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertEqual(payload["url"], f"/api/images/{payload['id']}")

        fetched = self.client.get(payload["url"])
        self.assertEqual(fetched.status_code, 200)
        self.assertEqual(fetched.content, raw)
        self.assertEqual(fetched.headers["content-type"], "image/png")

    def test_image_upload_requires_auth_and_fields(self):
        data = base64.b64encode(b"x").decode()
        anonymous = self.client.post("/api/images-json", json={"mime": "image/png", "data": data})
        self.assertEqual(anonymous.status_code, 401)

        token = self.register()
        missing = self.client.post(
            "/api/images-json", json={"mime": "image/png"}, headers=self.auth(token)
        )
        self.assertEqual(missing.status_code, 400)
        garbage = self.client.post(
            "/api/images-json",
            json={"mime": "image/png", "data": "not base64!!"},
            headers=self.auth(token),
        )
        self.assertEqual(garbage.status_code, 400)

    def test_unknown_image(self):
        response = self.client.get("/api/images/nope")
        self.assertEqual(response.status_code, 404)

    def test_oversized_body_is_rejected(self):
        client, _ = build_client(max_body_bytes=64)
        response = client.post(
            "/api/auth/register", json={"username": "ann", "password": "p" * 100}
        )
        self.assertEqual(response.status_code, 413)
        self.assertIn("error", response.json())

    def test_oversized_chunked_body_is_rejected(self):
        client, db = build_client(max_body_bytes=64)

        def chunks():
            yield b'{"username": "ann", "password": "'
            for _ in range(20):
                yield b"p" * 30
            yield b'"}'

        response = client.post(
            "/api/auth/register",
            content=chunks(),
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 413)
        self.assertEqual(response.json(), {"error": "request body too large"})
        self.assertIsNone(db.get_user_by_username("ann"))

    def test_small_chunked_body_passes(self):
        client, _ = build_client(max_body_bytes=1024)

        def chunks():
            yield b'{"username": "ann", '
            yield b'"password": "pw123456"}'

        response = client.post(
            "/api/auth/register",
            content=chunks(),
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 201, response.text)

    def test_unexpected_failure_maps_to_500(self):
        class BrokenDb(InMemoryDbClient):
            def list_entries(self, **kwargs):
                raise RuntimeError("store down")

        db = BrokenDb()
        app = create_app(Settings(jwt_secret=SECRET))
        app.dependency_overrides[get_db_client] = lambda: db
        client = TestClient(app, raise_server_exceptions=False)
        response = client.get("/api/entries")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "server"})


class DependencyWiringTests(unittest.TestCase):
    def test_in_memory_without_database_url(self):
        with mock.patch.object(dependencies, "_db_client", None), mock.patch(
            "backend.dependencies.get_settings",
            return_value=Settings(database_url=None, use_in_memory_backends=False),
        ):
            db = dependencies.get_db_client()
            self.assertIsInstance(db, InMemoryDbClient)
            self.assertIs(dependencies.get_db_client(), db)

    def test_sql_client_for_database_url(self):
        settings = Settings(
            database_url="sqlite+pysqlite:///:memory:", use_in_memory_backends=False
        )
        with mock.patch.object(dependencies, "_db_client", None), mock.patch(
            "backend.dependencies.get_settings", return_value=settings
        ):
            self.assertIsInstance(dependencies.get_db_client(), SqlDbClient)

    def test_in_memory_toggle_wins(self):
        settings = Settings(
            database_url="sqlite+pysqlite:///:memory:", use_in_memory_backends=True
        )
        with mock.patch.object(dependencies, "_db_client", None), mock.patch(
            "backend.dependencies.get_settings", return_value=settings
        ):
            self.assertIsInstance(dependencies.get_db_client(), InMemoryDbClient)


if __name__ == "__main__":
    unittest.main()
