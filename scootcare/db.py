from __future__ import annotations
from typing import Callable, Dict, List, Optional

from supabase import create_client

from .config import get_backend_name, get_supabase_key, get_supabase_url, STORAGE_BUCKET
from .errors import ConcurrencyError, NotFoundError, UpstreamError
from .logger import get_logger
from .realtime import Broadcaster

log = get_logger("scootcare.db")


class SupabaseBackend:
    """Collaborator surface on top of a Supabase project.

    Tables: users, orders, knowledge_entries, chat_sessions, support_queries.
    chat_sessions needs an integer `version` column for the optimistic check.
    Change notifications are delivered in process only: subscribers hear
    about writes made through this backend object and nothing else. Rows
    changed by another worker or directly in the database are not pushed, so
    run a single worker when the session stream must carry agent replies.
    """

    name = "supabase"

    def __init__(self, client, bucket: str = STORAGE_BUCKET):
        self.client = client
        self.bucket = bucket
        self.realtime = Broadcaster()

    def _run(self, what: str, query) -> List[Dict]:
        try:
            res = query.execute()
        except Exception as exc:
            log.error("Supabase %s failed: %s", what, exc)
            raise UpstreamError(f"{what} failed: {exc}") from exc
        return list(res.data or []) if res else []

    def insert(self, table: str, row: Dict) -> Dict:
        rows = self._run(f"insert into {table}", self.client.table(table).insert(row))
        if not rows:
            raise UpstreamError(f"insert into {table} returned no row")
        self.realtime.publish(table, "INSERT", rows[0])
        return rows[0]

    def get(self, table: str, row_id: str) -> Optional[Dict]:
        rows = self.select(table, {"id": row_id}, limit=1)
        return rows[0] if rows else None

    def select(self, table: str, filters: Optional[Dict] = None, order_by: Optional[str] = None,
               desc: bool = False, limit: Optional[int] = None) -> List[Dict]:
        query = self.client.table(table).select("*")
        for key, value in (filters or {}).items():
            query = query.eq(key, value)
        if order_by:
            query = query.order(order_by, desc=desc)
        if limit is not None:
            query = query.limit(limit)
        return self._run(f"select from {table}", query)

    def update(self, table: str, row_id: str, patch: Dict, expected_version: Optional[int] = None) -> Dict:
        body = dict(patch)
        query = self.client.table(table)
        if expected_version is not None:
            body["version"] = expected_version + 1
            query = query.update(body).eq("id", row_id).eq("version", expected_version)
        else:
            query = query.update(body).eq("id", row_id)
        rows = self._run(f"update {table}", query)
        if not rows:
            if self.get(table, row_id) is None:
                raise NotFoundError(f"{table} row {row_id} not found")
            raise ConcurrencyError(f"{table} row {row_id} changed since version {expected_version}")
        self.realtime.publish(table, "UPDATE", rows[0])
        return rows[0]

    def delete(self, table: str, row_id: str) -> None:
        rows = self._run(f"delete from {table}", self.client.table(table).delete().eq("id", row_id))
        if not rows:
            raise NotFoundError(f"{table} row {row_id} not found")
        self.realtime.publish(table, "DELETE", rows[0])

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        bucket = self.client.storage.from_(self.bucket)
        try:
            bucket.upload(path, data, {"content-type": content_type})
            return bucket.get_public_url(path)
        except Exception as exc:
            log.error("Supabase upload of %s failed: %s", path, exc)
            raise UpstreamError(f"upload of {path} failed: {exc}") from exc

    def subscribe(self, table: str, filters: Optional[Dict], on_change: Callable[[str, Dict], None]) -> str:
        """In-process subscription; see the class docstring for what is not observed."""
        return self.realtime.subscribe(table, filters, on_change)

    def unsubscribe(self, token: str) -> None:
        self.realtime.unsubscribe(token)

    def user_for_token(self, token: str) -> Optional[Dict]:
        try:
            res = self.client.auth.get_user(token)
        except Exception as exc:
            log.info("Token rejected by Supabase auth: %s", exc)
            return None
        auth_user = getattr(res, "user", None)
        if auth_user is None:
            return None
        row = self.get("users", auth_user.id)
        return row or {"id": auth_user.id, "phone": getattr(auth_user, "phone", None), "role": "customer"}


def get_supabase_client():
    url = get_supabase_url()
    key = get_supabase_key()
    if not url or not key:
        return None
    return create_client(url, key)


def get_backend():
    """Build the configured backend: Supabase when credentials exist, else a seeded in-memory store."""
    if get_backend_name() == "supabase":
        client = get_supabase_client()
        if client is None:
            raise UpstreamError("SCOOTCARE_BACKEND=supabase but SUPABASE_URL / key are not set")
        log.info("Using Supabase backend at %s", get_supabase_url())
        return SupabaseBackend(client)
    from .storage import InMemoryBackend
    from .seed import seed_backend
    backend = InMemoryBackend()
    seed_backend(backend)
    log.info("Using seeded in-memory backend")
    return backend
