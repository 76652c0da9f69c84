from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Dict, Optional, Any
from datetime import date, datetime, timezone, timedelta
import re
import uuid

from .errors import SessionClosedError

class Role(str, Enum):
    USER = "user"
    BOT = "bot"
    AGENT = "agent"

class UserRole(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"

class EntryKind(str, Enum):
    STATIC = "static"
    DYNAMIC = "dynamic"

class SessionStatus(str, Enum):
    ACTIVE = "active"
    ESCALATED = "escalated"
    RESOLVED = "resolved"

class TicketStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)

_FRACTION = re.compile(r"\.(\d+)")

def parse_ts(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # Postgres trims trailing zeros; fromisoformat before 3.11 wants 3 or 6 digits
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    ts = datetime.fromisoformat(text)
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)

def parse_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])

def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class User:
    id: str
    phone: Optional[str] = None
    role: UserRole = UserRole.CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_row(cls, row: Dict) -> "User":
        role = (row.get("role") or UserRole.CUSTOMER.value).lower()
        return cls(id=row["id"], phone=row.get("phone"),
                   role=UserRole.ADMIN if role == UserRole.ADMIN.value else UserRole.CUSTOMER)


@dataclass(frozen=True)
class Attachment:
    url: str
    name: str
    mime: str
    size: int

    def to_dict(self) -> Dict:
        return {"url": self.url, "name": self.name, "mime": self.mime, "size": self.size}

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> Optional["Attachment"]:
        if not data:
            return None
        return cls(url=data["url"], name=data["name"], mime=data["mime"], size=int(data["size"]))


@dataclass(frozen=True)
class Message:
    id: str
    role: Role
    text: str
    timestamp: datetime
    attachment: Optional[Attachment] = None

    @classmethod
    def create(cls, role: Role, text: str, attachment: Optional[Attachment] = None) -> "Message":
        return cls(id=new_id(), role=role, text=text, timestamp=utcnow(), attachment=attachment)

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "role": self.role.value,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
            "attachment": self.attachment.to_dict() if self.attachment else None,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Message":
        return cls(id=data["id"], role=Role(data["role"]), text=data["text"],
                   timestamp=parse_ts(data["timestamp"]), attachment=Attachment.from_dict(data.get("attachment")))


@dataclass
class KnowledgeEntry:
    question_pattern: str
    kind: EntryKind = EntryKind.STATIC
    body: Optional[str] = None
    resolver_key: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)

    def patched(self, patch: Dict) -> "KnowledgeEntry":
        changes = {k: v for k, v in patch.items() if k in {"question_pattern", "kind", "body", "resolver_key"}}
        if "kind" in changes:
            changes["kind"] = EntryKind(changes["kind"])
        return replace(self, **changes)

    def to_row(self) -> Dict:
        return {
            "id": self.id,
            "question": self.question_pattern,
            "type": self.kind.value,
            "resolution": self.body or "",
            "metadata": {"function": self.resolver_key} if self.kind == EntryKind.DYNAMIC else {},
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_row(cls, row: Dict) -> "KnowledgeEntry":
        metadata = row.get("metadata") or {}
        return cls(id=row["id"], question_pattern=row["question"], kind=EntryKind(row["type"]),
                   body=row.get("resolution") or None, resolver_key=metadata.get("function"),
                   created_at=parse_ts(row.get("created_at")) or utcnow())


@dataclass
class ConversationSession:
    """Append-only message log owned by one user.

    Status only moves forward: active -> escalated -> resolved, or straight
    from active to resolved. A resolved session is read-only.
    """
    owner_id: str
    messages: List[Message] = field(default_factory=list)
    status: SessionStatus = SessionStatus.ACTIVE
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    expires_at: Optional[datetime] = None
    version: int = 0

    @property
    def is_closed(self) -> bool:
        return self.status == SessionStatus.RESOLVED

    def append(self, message: Message) -> None:
        if self.is_closed:
            raise SessionClosedError(f"session {self.id} is resolved")
        self.messages.append(message)

    def escalate(self) -> None:
        if self.is_closed:
            raise SessionClosedError(f"session {self.id} is resolved")
        if self.status == SessionStatus.ACTIVE:
            self.status = SessionStatus.ESCALATED

    def close(self) -> None:
        self.status = SessionStatus.RESOLVED

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at is not None and self.expires_at <= (now or utcnow())

    def to_row(self) -> Dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "chat_blob": [m.to_dict() for m in self.messages],
            "status": self.status.value,
            "started_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "version": self.version,
        }

    @classmethod
    def from_row(cls, row: Dict) -> "ConversationSession":
        blob = row.get("chat_blob")
        return cls(id=row["id"], owner_id=row["owner_id"],
                   messages=[Message.from_dict(m) for m in blob] if isinstance(blob, list) else [],
                   status=SessionStatus(row.get("status") or SessionStatus.ACTIVE.value),
                   created_at=parse_ts(row.get("started_at")) or utcnow(),
                   expires_at=parse_ts(row.get("expires_at")),
                   version=int(row.get("version") or 0))

    @classmethod
    def new(cls, owner_id: str, ttl_days: int) -> "ConversationSession":
        now = utcnow()
        return cls(owner_id=owner_id, created_at=now, expires_at=now + timedelta(days=ttl_days))


@dataclass
class SupportTicket:
    owner_id: str
    summary: str
    session_id: Optional[str] = None
    attachment: Optional[Attachment] = None
    status: TicketStatus = TicketStatus.OPEN
    trigger_message_id: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)

    def to_row(self) -> Dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "session_id": self.session_id,
            "summary": self.summary,
            "attachment": self.attachment.to_dict() if self.attachment else None,
            "status": self.status.value,
            "trigger_message_id": self.trigger_message_id,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_row(cls, row: Dict) -> "SupportTicket":
        return cls(id=row["id"], owner_id=row["owner_id"], session_id=row.get("session_id"),
                   summary=row["summary"], attachment=Attachment.from_dict(row.get("attachment")),
                   status=TicketStatus(row.get("status") or TicketStatus.OPEN.value),
                   trigger_message_id=row.get("trigger_message_id"),
                   created_at=parse_ts(row.get("created_at")) or utcnow())


@dataclass
class Order:
    id: str
    owner_id: str
    model_name: str
    status: str
    expected_delivery_date: Optional[date] = None
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_row(cls, row: Dict) -> "Order":
        return cls(id=row["id"], owner_id=row["owner_id"], model_name=row["model_name"],
                   status=row["status"], expected_delivery_date=parse_date(row.get("expected_delivery_date")),
                   created_at=parse_ts(row.get("created_at")) or utcnow())

    def to_dict(self) -> Dict:
        return {
            "id": self.id, "model_name": self.model_name, "status": self.status,
            "expected_delivery_date": self.expected_delivery_date.isoformat() if self.expected_delivery_date else None,
            "created_at": self.created_at.isoformat(),
        }
