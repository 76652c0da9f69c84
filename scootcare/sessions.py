from __future__ import annotations
from typing import Callable, List, Optional, Tuple, TypeVar

from jsonschema import validate, ValidationError as SchemaError

from .config import SESSION_TTL_DAYS, SAVE_RETRIES, GREETING
from .errors import ConcurrencyError, NotFoundError, UpstreamError
from .json_schemas import CHAT_BLOB_SCHEMA
from .logger import get_logger
from .models import ConversationSession, Message, Role, utcnow

log = get_logger("scootcare.sessions")

TABLE = "chat_sessions"

T = TypeVar("T")

def session_from_row(row) -> ConversationSession:
    blob = row.get("chat_blob")
    if blob is not None:
        try:
            validate(instance=blob, schema=CHAT_BLOB_SCHEMA)
        except SchemaError as exc:
            raise UpstreamError(f"chat_blob of session {row.get('id')} is malformed: {exc.message}") from exc
    return ConversationSession.from_row(row)


class SessionRepository:
    """Loads and saves conversations in the chat_sessions collection.

    Every save is a versioned write: the row is updated only if its version
    still equals the one that was read. mutate() wraps read/modify/write and
    retries on a version conflict so a customer and an agent appending at
    the same time both land in the log.
    """

    def __init__(self, backend, ttl_days: int = SESSION_TTL_DAYS, retries: int = SAVE_RETRIES):
        self.backend = backend
        self.ttl_days = ttl_days
        self.retries = retries

    def start(self, owner_id: str) -> ConversationSession:
        session = ConversationSession.new(owner_id, self.ttl_days)
        session.append(Message.create(Role.BOT, GREETING))
        row = self.backend.insert(TABLE, session.to_row())
        log.info("Started session %s for owner=%s", session.id, owner_id)
        return session_from_row(row)

    def get(self, session_id: str) -> ConversationSession:
        row = self.backend.get(TABLE, session_id)
        if row is None:
            raise NotFoundError(f"session {session_id} not found")
        return session_from_row(row)

    def list_for(self, owner_id: str) -> List[ConversationSession]:
        rows = self.backend.select(TABLE, {"owner_id": owner_id}, order_by="started_at", desc=True)
        return [session_from_row(r) for r in rows]

    def latest(self, owner_id: str) -> Optional[ConversationSession]:
        now = utcnow()
        for session in self.list_for(owner_id):
            if not session.is_closed and not session.is_expired(now):
                return session
        return None

    def latest_or_start(self, owner_id: str) -> ConversationSession:
        return self.latest(owner_id) or self.start(owner_id)

    def save(self, session: ConversationSession) -> ConversationSession:
        row = session.to_row()
        expected = row.pop("version")
        row.pop("id")
        out = self.backend.update(TABLE, session.id, row, expected_version=expected)
        session.version = int(out.get("version") or expected + 1)
        return session

    def mutate(self, session_id: str, change: Callable[[ConversationSession], T]) -> Tuple[ConversationSession, T]:
        """Apply change() to a fresh copy of the session and save it.

        Anything change() raises aborts the write, so a failed append never
        partially applies.
        """
        for attempt in range(1, self.retries + 1):
            session = self.get(session_id)
            result = change(session)
            try:
                return self.save(session), result
            except ConcurrencyError:
                log.warning("Version conflict on session %s (attempt %s/%s)", session_id, attempt, self.retries)
        raise ConcurrencyError(f"session {session_id} kept changing; gave up after {self.retries} attempts")

    def watch(self, session_id: str, on_messages: Callable[[List[Message]], None]) -> str:
        """Push the full message list of the session to on_messages after every change."""
        return self.watch_session(session_id, lambda s: on_messages(s.messages))

    def watch_session(self, session_id: str, on_session: Callable[[ConversationSession], None]) -> str:
        def on_change(event: str, row):
            if event == "DELETE":
                return
            on_session(session_from_row(row))
        return self.backend.subscribe(TABLE, {"id": session_id}, on_change)

    def unwatch(self, token: str) -> None:
        self.backend.unsubscribe(token)
