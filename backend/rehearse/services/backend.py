"""
Remote data client: thin wrapper over the hosted Supabase platform.

Three concerns, one client per browser session:
- identity (sign in/up/out, password reset, session retrieval, change events)
- relational storage (insert/select/delete on owner-scoped tables)
- blob storage (upload, public URL, remove, bucket listing)

Every SDK failure is re-raised as ``RemoteError`` carrying the remote message.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from supabase import Client, create_client

from rehearse.core.config import AppConfig
from rehearse.core.errors import ConfigurationError, RehearseError, RemoteError
from rehearse.domain.schemas import Identity


LOGGER = logging.getLogger(__name__)

RECORDINGS_BUCKET = "interview-recordings"
RESUMES_BUCKET = "resume-files"
REQUIRED_BUCKETS = (RECORDINGS_BUCKET, RESUMES_BUCKET)

PRACTICE_SESSIONS_TABLE = "practice_sessions"
RESUME_FILES_TABLE = "resume_files"
CUSTOM_QUESTIONS_TABLE = "custom_questions"

MOCK_MODE_MESSAGE = (
    "Supabase credentials are not configured. "
    "Set SUPABASE_URL and SUPABASE_ANON_KEY to connect to the backend."
)

T = TypeVar("T")
ClientFactory = Callable[[str, str], Any]


def _default_client_factory(url: str, key: str) -> Client:
    return create_client(url, key)


def identity_from_user(user: Any) -> Optional[Identity]:
    """Map a Supabase user object to an ``Identity``."""
    if user is None or not getattr(user, "id", None):
        return None
    metadata = getattr(user, "user_metadata", None) or {}
    return Identity(
        id=str(user.id),
        email=getattr(user, "email", None) or None,
        name=metadata.get("name") or None,
    )


def _remote_message(exc: Exception) -> str:
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc) or exc.__class__.__name__


class BackendClient:
    """Owner of one Supabase client and its in-memory token storage."""

    def __init__(self, config: AppConfig, client_factory: Optional[ClientFactory] = None) -> None:
        self._config = config
        self._client_factory = client_factory or _default_client_factory
        self._client: Any = None

    @property
    def is_mock(self) -> bool:
        return self._config.is_mock

    def _supabase(self) -> Any:
        if self._config.is_mock:
            raise ConfigurationError(MOCK_MODE_MESSAGE)
        if self._client is None:
            try:
                self._client = self._client_factory(
                    self._config.supabase_url, self._config.supabase_anon_key
                )
            except Exception as e:  # SupabaseException for malformed URL/key
                raise ConfigurationError(f"Could not create Supabase client: {_remote_message(e)}") from e
        return self._client

    def _call(self, action: str, fn: Callable[[Any], T]) -> T:
        client = self._supabase()
        try:
            return fn(client)
        except RehearseError:
            raise
        except Exception as e:  # AuthApiError, APIError, StorageException, httpx errors
            message = _remote_message(e)
            LOGGER.warning("Supabase %s failed: %s", action, message)
            raise RemoteError(message) from e

    # ==================== Identity ====================

    def sign_in(self, email: str, password: str) -> Identity:
        response = self._call(
            "sign-in",
            lambda c: c.auth.sign_in_with_password({"email": email, "password": password}),
        )
        identity = identity_from_user(getattr(response, "user", None))
        if identity is None:
            raise RemoteError("Sign in did not return a user")
        return identity

    def sign_up(self, email: str, password: str, name: str) -> Optional[Identity]:
        response = self._call(
            "sign-up",
            lambda c: c.auth.sign_up(
                {"email": email, "password": password, "options": {"data": {"name": name}}}
            ),
        )
        return identity_from_user(getattr(response, "user", None))

    def sign_out(self) -> None:
        self._call("sign-out", lambda c: c.auth.sign_out())

    def reset_password(self, email: str, redirect_to: str) -> None:
        self._call(
            "password reset",
            lambda c: c.auth.reset_password_for_email(email, {"redirect_to": redirect_to}),
        )

    def get_session(self) -> Any:
        return self._call("session lookup", lambda c: c.auth.get_session())

    def get_identity(self) -> Optional[Identity]:
        """Resolve the identity behind the current session, if any."""
        session = self.get_session()
        if session is None:
            return None
        response = self._call("user lookup", lambda c: c.auth.get_user())
        return identity_from_user(getattr(response, "user", None))

    def subscribe(self, callback: Callable[[str, Any], None]) -> Any:
        """Register an identity-change callback; returns an object with ``unsubscribe()``."""
        return self._call("auth subscription", lambda c: c.auth.on_auth_state_change(callback))

    # ==================== Relational storage ====================

    def insert_row(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        response = self._call(f"insert into {table}", lambda c: c.table(table).insert(row).execute())
        data = getattr(response, "data", None) or []
        return dict(data[0]) if data else dict(row)

    def select_rows(
        self,
        table: str,
        owner_id: str,
        *,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = "created_at",
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        def run(client: Any) -> Any:
            query = client.table(table).select("*").eq("user_id", owner_id)
            for column, value in (filters or {}).items():
                query = query.eq(column, value)
            if order_by:
                query = query.order(order_by, desc=descending)
            if limit is not None:
                query = query.limit(limit)
            return query.execute()

        response = self._call(f"select from {table}", run)
        return [dict(row) for row in (getattr(response, "data", None) or [])]

    def delete_row(self, table: str, row_id: Any, owner_id: str) -> None:
        self._call(
            f"delete from {table}",
            lambda c: c.table(table).delete().eq("id", row_id).eq("user_id", owner_id).execute(),
        )

    def check_table(self, table: str) -> None:
        """Issue a one-row select to confirm the table is reachable."""
        self._call(f"table check {table}", lambda c: c.table(table).select("id").limit(1).execute())

    # ==================== Blob storage ====================

    def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> None:
        self._call(
            f"upload to {bucket}",
            lambda c: c.storage.from_(bucket).upload(
                path,
                data,
                {"content-type": content_type, "cache-control": "3600", "upsert": "false"},
            ),
        )

    def public_url(self, bucket: str, path: str) -> str:
        url = self._call(f"public URL in {bucket}", lambda c: c.storage.from_(bucket).get_public_url(path))
        if not url:
            raise RemoteError("Failed to get public URL")
        return str(url)

    def remove(self, bucket: str, paths: Iterable[str]) -> None:
        targets = list(paths)
        self._call(f"remove from {bucket}", lambda c: c.storage.from_(bucket).remove(targets))

    def list_buckets(self) -> List[str]:
        buckets = self._call("bucket listing", lambda c: c.storage.list_buckets())
        return [b["name"] if isinstance(b, dict) else b.name for b in (buckets or [])]
