from __future__ import annotations
from typing import List, Dict, Optional, Callable
from datetime import datetime, timezone
import copy
import threading
import uuid

from .errors import NotFoundError, ConcurrencyError
from .realtime import Broadcaster

COLLECTIONS = ("users", "orders", "knowledge_entries", "chat_sessions", "support_queries")

class InMemoryBackend:
    """Process-local stand-in for the hosted backend.

    Covers the whole collaborator surface: generic CRUD over named
    collections, file storage, bearer-token lookup and realtime change
    notifications. Rows are copied on the way in and out so callers never
    share state with the store.
    """

    name = "memory"

    def __init__(self, base_url: str = "memory://chat-files"):
        self.tables: Dict[str, Dict[str, Dict]] = {c: {} for c in COLLECTIONS}
        self.files: Dict[str, bytes] = {}
        self.tokens: Dict[str, str] = {}  # bearer token -> user id
        self.base_url = base_url
        self.realtime = Broadcaster()
        self._lock = threading.RLock()

    def _table(self, table: str) -> Dict[str, Dict]:
        if table not in self.tables:
            raise NotFoundError(f"unknown collection {table}")
        return self.tables[table]

    def insert(self, table: str, row: Dict) -> Dict:
        item = copy.deepcopy(row)
        item.setdefault("id", str(uuid.uuid4()))
        item.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        with self._lock:
            self._table(table)[item["id"]] = item
            out = copy.deepcopy(item)
        self.realtime.publish(table, "INSERT", out)
        return out

    def get(self, table: str, row_id: str) -> Optional[Dict]:
        with self._lock:
            row = self._table(table).get(row_id)
            return copy.deepcopy(row) if row is not None else None

    def select(self, table: str, filters: Optional[Dict] = None, order_by: Optional[str] = None,
               desc: bool = False, limit: Optional[int] = None) -> List[Dict]:
        with self._lock:
            rows = [copy.deepcopy(r) for r in self._table(table).values()
                    if all(r.get(k) == v for k, v in (filters or {}).items())]
        if order_by:
            # stable sort keeps insertion order among equal keys
            rows.sort(key=lambda r: (r.get(order_by) is None, r.get(order_by) or ""), reverse=desc)
        return rows[:limit] if limit is not None else rows

    def update(self, table: str, row_id: str, patch: Dict, expected_version: Optional[int] = None) -> Dict:
        with self._lock:
            rows = self._table(table)
            current = rows.get(row_id)
            if current is None:
                raise NotFoundError(f"{table} row {row_id} not found")
            item = copy.deepcopy(current)
            item.update(copy.deepcopy(patch))
            if expected_version is not None:
                if int(current.get("version") or 0) != expected_version:
                    raise ConcurrencyError(f"{table} row {row_id} changed since version {expected_version}")
                item["version"] = expected_version + 1
            rows[row_id] = item
            out = copy.deepcopy(item)
        self.realtime.publish(table, "UPDATE", out)
        return out

    def delete(self, table: str, row_id: str) -> None:
        with self._lock:
            row = self._table(table).pop(row_id, None)
        if row is None:
            raise NotFoundError(f"{table} row {row_id} not found")
        self.realtime.publish(table, "DELETE", row)

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        with self._lock:
            self.files[path] = bytes(data)
        return f"{self.base_url}/{path}"

    def subscribe(self, table: str, filters: Optional[Dict], on_change: Callable[[str, Dict], None]) -> str:
        return self.realtime.subscribe(table, filters, on_change)

    def unsubscribe(self, token: str) -> None:
        self.realtime.unsubscribe(token)

    def issue_token(self, user_id: str, token: Optional[str] = None) -> str:
        token = token or uuid.uuid4().hex
        with self._lock:
            self.tokens[token] = user_id
        return token

    def user_for_token(self, token: str) -> Optional[Dict]:
        with self._lock:
            user_id = self.tokens.get(token)
        return self.get("users", user_id) if user_id else None

    def reset(self):
        with self._lock:
            for rows in self.tables.values():
                rows.clear()
            self.files.clear(); self.tokens.clear()
