from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from rehearse.core.config import AppConfig
from rehearse.core.errors import RemoteError
from rehearse.core.rate_limit import limiter
from rehearse.services.auth_state import AuthController
from rehearse.services.backend import BackendClient


TEST_SUPABASE_URL = "https://project.supabase.co"
TEST_ANON_KEY = "test-anon-key"


class FakeApiError(Exception):
    """Mimics the SDK errors, which expose the remote text as ``message``."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class FakeSubscription:
    def __init__(self, listeners: List[Callable], callback: Callable) -> None:
        self._listeners = listeners
        self._callback = callback
        self.unsubscribed = 0

    def unsubscribe(self) -> None:
        self.unsubscribed += 1
        if self._callback in self._listeners:
            self._listeners.remove(self._callback)


class FakeAuth:
    def __init__(self, server: "FakeServer") -> None:
        self._server = server
        self.session: Any = None
        self.listeners: List[Callable] = []
        self.subscriptions: List[FakeSubscription] = []

    def _emit(self, event: str, session: Any) -> None:
        for callback in list(self.listeners):
            callback(event, session)

    def sign_in_with_password(self, credentials: Dict[str, str]) -> Any:
        self._server.maybe_fail("sign_in")
        user = self._server.users.get(credentials["email"])
        if user is None or user["password"] != credentials["password"]:
            raise FakeApiError("Invalid login credentials")
        self.session = SimpleNamespace(user=self._server.user_object(user), access_token="token")
        self._emit("SIGNED_IN", self.session)
        return SimpleNamespace(user=self.session.user, session=self.session)

    def sign_up(self, credentials: Dict[str, Any]) -> Any:
        self._server.maybe_fail("sign_up")
        email = credentials["email"]
        if email in self._server.users:
            raise FakeApiError("User already registered")
        user = self._server.add_user(
            email, credentials["password"], credentials.get("options", {}).get("data", {}).get("name")
        )
        return SimpleNamespace(user=self._server.user_object(user), session=None)

    def sign_out(self) -> None:
        self._server.maybe_fail("sign_out")
        self.session = None
        self._emit("SIGNED_OUT", None)

    def reset_password_for_email(self, email: str, options: Dict[str, Any]) -> None:
        self._server.maybe_fail("reset_password")
        self._server.reset_requests.append((email, options))

    def get_session(self) -> Any:
        self._server.maybe_fail("get_session")
        return self.session

    def get_user(self) -> Any:
        if self.session is None:
            return None
        return SimpleNamespace(user=self.session.user)

    def on_auth_state_change(self, callback: Callable) -> FakeSubscription:
        self.listeners.append(callback)
        subscription = FakeSubscription(self.listeners, callback)
        self.subscriptions.append(subscription)
        return subscription


class FakeQuery:
    def __init__(self, server: "FakeServer", table: str) -> None:
        self._server = server
        self._table = table
        self._op = "select"
        self._payload: Optional[Dict[str, Any]] = None
        self._filters: List[tuple] = []
        self._order: Optional[tuple] = None
        self._limit: Optional[int] = None

    def select(self, columns: str = "*") -> "FakeQuery":
        self._op = "select"
        return self

    def insert(self, row: Dict[str, Any]) -> "FakeQuery":
        self._op = "insert"
        self._payload = dict(row)
        return self

    def delete(self) -> "FakeQuery":
        self._op = "delete"
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append((column, value))
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._order = (column, desc)
        return self

    def limit(self, count: int) -> "FakeQuery":
        self._limit = count
        return self

    def _matches(self, row: Dict[str, Any]) -> bool:
        return all(str(row.get(column)) == str(value) for column, value in self._filters)

    def execute(self) -> Any:
        self._server.maybe_fail(f"{self._op}:{self._table}")
        rows = self._server.tables.setdefault(self._table, [])

        if self._op == "insert":
            stored = self._server.stamp(self._table, self._payload or {})
            rows.append(stored)
            return SimpleNamespace(data=[dict(stored)])

        matched = [row for row in rows if self._matches(row)]
        if self._op == "delete":
            self._server.tables[self._table] = [row for row in rows if not self._matches(row)]
            return SimpleNamespace(data=[dict(row) for row in matched])

        if self._order is not None:
            column, desc = self._order
            matched.sort(key=lambda row: row.get(column) or "", reverse=desc)
        if self._limit is not None:
            matched = matched[: self._limit]
        return SimpleNamespace(data=[dict(row) for row in matched])


class FakeBucket:
    def __init__(self, server: "FakeServer", name: str) -> None:
        self._server = server
        self._name = name

    def upload(self, path: str, data: bytes, options: Dict[str, str]) -> Any:
        self._server.maybe_fail(f"upload:{self._name}")
        objects = self._server.buckets[self._name]
        if path in objects:
            raise FakeApiError("The resource already exists")
        objects[path] = bytes(data)
        self._server.upload_options.append(options)
        return SimpleNamespace(path=path)

    def get_public_url(self, path: str) -> str:
        return f"{self._server.url}/storage/v1/object/public/{self._name}/{path}"

    def remove(self, paths: List[str]) -> Any:
        self._server.maybe_fail(f"remove:{self._name}")
        objects = self._server.buckets[self._name]
        for path in paths:
            objects.pop(path, None)
        return [{"name": path} for path in paths]


class FakeStorage:
    def __init__(self, server: "FakeServer") -> None:
        self._server = server

    def from_(self, bucket: str) -> FakeBucket:
        if bucket not in self._server.buckets:
            raise FakeApiError("Bucket not found")
        return FakeBucket(self._server, bucket)

    def list_buckets(self) -> List[Any]:
        self._server.maybe_fail("list_buckets")
        return [SimpleNamespace(name=name) for name in self._server.buckets]


class FakeSupabaseClient:
    def __init__(self, server: "FakeServer") -> None:
        self.auth = FakeAuth(server)
        self.storage = FakeStorage(server)
        self._server = server

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self._server, name)


class FakeServer:
    """In-memory stand-in for one Supabase project shared by all clients."""

    def __init__(self, url: str = TEST_SUPABASE_URL) -> None:
        self.url = url
        self.users: Dict[str, Dict[str, Any]] = {}
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.buckets: Dict[str, Dict[str, bytes]] = {"interview-recordings": {}, "resume-files": {}}
        self.failures: Dict[str, str] = {}
        self.reset_requests: List[tuple] = []
        self.upload_options: List[Dict[str, str]] = []
        self.clients: List[FakeSupabaseClient] = []
        self._next_id = 1
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def client_factory(self, url: str, key: str) -> FakeSupabaseClient:
        client = FakeSupabaseClient(self)
        self.clients.append(client)
        return client

    def fail(self, operation: str, message: str = "Service unavailable") -> None:
        self.failures[operation] = message

    def maybe_fail(self, operation: str) -> None:
        if operation in self.failures:
            raise FakeApiError(self.failures[operation])

    def add_user(self, email: str, password: str, name: Optional[str] = None) -> Dict[str, Any]:
        user = {"id": f"user-{len(self.users) + 1}", "email": email, "password": password, "name": name}
        self.users[email] = user
        return user

    @staticmethod
    def user_object(user: Dict[str, Any]) -> Any:
        return SimpleNamespace(id=user["id"], email=user["email"], user_metadata={"name": user["name"]})

    def stamp(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        self._clock += timedelta(seconds=1)
        stored = {"id": self._next_id, **row}
        stored.setdefault("upload_date" if table == "resume_files" else "created_at", self._clock.isoformat())
        self._next_id += 1
        return stored


class StubLLM:
    """Records prompts and answers with a canned completion or error."""

    def __init__(self, text: str = "", error: Optional[str] = None) -> None:
        self.text = text
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def generate_text(self, system_prompt: str, user_prompt: str, **kwargs: Any) -> Dict[str, Any]:
        self.calls.append({"system": system_prompt, "user": user_prompt, **kwargs})
        if self.error:
            raise RemoteError(self.error)
        return {"text": self.text, "usage": {}, "model": "stub"}


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture()
def supabase_server() -> FakeServer:
    server = FakeServer()
    server.add_user("ada@example.com", "secret-pass", "Ada")
    return server


@pytest.fixture()
def app_config() -> AppConfig:
    return AppConfig(
        supabase_url=TEST_SUPABASE_URL,
        supabase_anon_key=TEST_ANON_KEY,
        site_url="http://localhost:5173",
        auth_grace_period=0.3,
    )


@pytest.fixture()
def mock_config() -> AppConfig:
    return AppConfig(
        supabase_url="https://example.supabase.co",
        supabase_anon_key="dummy-key-for-development",
        supabase_url_source="placeholder",
        supabase_key_source="placeholder",
    )


@pytest.fixture()
def backend(app_config: AppConfig, supabase_server: FakeServer) -> BackendClient:
    return BackendClient(app_config, supabase_server.client_factory)


@pytest.fixture()
def auth(backend: BackendClient) -> AuthController:
    return AuthController(backend, site_url="http://localhost:5173")


@pytest.fixture()
def signed_in_auth(auth: AuthController) -> AuthController:
    result = asyncio.run(auth.sign_in("ada@example.com", "secret-pass"))
    assert result.ok
    return auth
