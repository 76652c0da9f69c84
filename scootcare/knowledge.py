from __future__ import annotations
from typing import Dict, List

from jsonschema import validate, ValidationError as SchemaError

from .config import QUICK_QUESTION_LIMIT
from .errors import NotFoundError, ValidationError
from .json_schemas import KNOWLEDGE_ENTRY_SCHEMA
from .logger import get_logger
from .models import KnowledgeEntry, EntryKind

log = get_logger("scootcare.knowledge")

TABLE = "knowledge_entries"

_FIELD_NAMES = {"question": "question_pattern", "resolution": "body", "metadata": "resolver_key", "type": "kind"}

def validate_entry(entry: KnowledgeEntry) -> None:
    """Raise ValidationError unless the entry has a question and an answer (or resolver)."""
    try:
        validate(instance=entry.to_row(), schema=KNOWLEDGE_ENTRY_SCHEMA)
    except SchemaError as exc:
        where = exc.absolute_path[0] if exc.absolute_path else None
        field = _FIELD_NAMES.get(where, where or "entry")
        if entry.kind == EntryKind.STATIC and where == "resolution":
            raise ValidationError("body must not be empty for a static entry") from exc
        if where == "metadata":
            raise ValidationError("resolver_key must not be empty for a dynamic entry") from exc
        raise ValidationError(f"{field} is invalid: {exc.message}") from exc


class KnowledgeStore:
    """Question -> resolution entries curated by administrators."""

    def __init__(self, backend):
        self.backend = backend

    def list(self) -> List[KnowledgeEntry]:
        rows = self.backend.select(TABLE, order_by="created_at")
        return [KnowledgeEntry.from_row(r) for r in rows]

    def quick_questions(self, limit: int = QUICK_QUESTION_LIMIT) -> List[KnowledgeEntry]:
        return self.list()[:limit]

    def get(self, entry_id: str) -> KnowledgeEntry:
        row = self.backend.get(TABLE, entry_id)
        if row is None:
            raise NotFoundError(f"knowledge entry {entry_id} not found")
        return KnowledgeEntry.from_row(row)

    def add(self, entry: KnowledgeEntry) -> KnowledgeEntry:
        validate_entry(entry)
        row = self.backend.insert(TABLE, entry.to_row())
        log.info("Knowledge entry added id=%s kind=%s", entry.id, entry.kind.value)
        return KnowledgeEntry.from_row(row)

    def update(self, entry_id: str, patch: Dict) -> KnowledgeEntry:
        current = self.get(entry_id)
        try:
            updated = current.patched(patch)
        except ValueError as exc:
            raise ValidationError("kind must be one of static, dynamic") from exc
        validate_entry(updated)
        row = updated.to_row()
        row.pop("id"); row.pop("created_at")
        out = self.backend.update(TABLE, entry_id, row)
        log.info("Knowledge entry updated id=%s fields=%s", entry_id, sorted(patch))
        return KnowledgeEntry.from_row(out)

    def remove(self, entry_id: str) -> None:
        self.backend.delete(TABLE, entry_id)
        log.info("Knowledge entry removed id=%s", entry_id)
