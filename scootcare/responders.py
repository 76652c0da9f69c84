from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from . import matcher
from .config import FALLBACK_REPLY, UNRESOLVED_REPLY, DEGRADED_REPLY
from .errors import UnknownResolverError, UpstreamError
from .logger import get_logger
from .models import KnowledgeEntry, EntryKind
from .orders import order_tracking

log = get_logger("scootcare.responders")

@dataclass(frozen=True)
class TurnContext:
    user_id: Optional[str] = None

Resolver = Callable[[TurnContext], str]

class TurnState(str, Enum):
    RECEIVED = "received"
    MATCHED = "matched"
    UNMATCHED = "unmatched"
    STATIC = "static"
    DYNAMIC = "dynamic"
    RESPONDED = "responded"

@dataclass
class TurnResult:
    text: str
    entry: Optional[KnowledgeEntry] = None
    path: List[TurnState] = field(default_factory=list)
    offer_escalation: bool = False
    degraded: bool = False

    @property
    def matched(self) -> bool:
        return self.entry is not None


class ResolverRegistry:
    def __init__(self):
        self._resolvers: Dict[str, Resolver] = {}

    def register(self, key: str, fn: Resolver) -> None:
        self._resolvers[key] = fn

    def get(self, key: Optional[str]) -> Resolver:
        fn = self._resolvers.get(key or "")
        if fn is None:
            raise UnknownResolverError(f"no resolver registered under {key!r}")
        return fn

    def keys(self) -> List[str]:
        return sorted(self._resolvers)

def default_registry(backend) -> ResolverRegistry:
    registry = ResolverRegistry()
    registry.register("order_tracking", order_tracking(backend))
    return registry


class ResponderDispatch:
    """Turns a matched knowledge entry (or no match) into the bot's reply."""

    def __init__(self, registry: ResolverRegistry):
        self.registry = registry

    def resolve(self, entry: KnowledgeEntry, context: TurnContext) -> str:
        """Static entries answer with their body; dynamic ones call the registered resolver.

        Raises UnknownResolverError for an unregistered key and lets resolver
        failures (UpstreamError) through; answer() downgrades both.
        """
        if entry.kind == EntryKind.STATIC:
            return entry.body or ""
        return self.registry.get(entry.resolver_key)(context)

    def answer(self, query: str, entries: Iterable[KnowledgeEntry], context: TurnContext) -> TurnResult:
        result = TurnResult(text="", path=[TurnState.RECEIVED])
        entry = matcher.match(query, entries)
        if entry is None:
            result.path += [TurnState.UNMATCHED, TurnState.RESPONDED]
            result.text = FALLBACK_REPLY
            result.offer_escalation = True
            log.info("No knowledge match for user=%s", context.user_id)
            return result

        result.entry = entry
        result.path += [TurnState.MATCHED,
                        TurnState.STATIC if entry.kind == EntryKind.STATIC else TurnState.DYNAMIC]
        try:
            result.text = self.resolve(entry, context)
        except UnknownResolverError as exc:
            log.warning("Entry %s: %s", entry.id, exc)
            result.text, result.offer_escalation, result.degraded = UNRESOLVED_REPLY, True, True
        except UpstreamError as exc:
            log.error("Resolver %s failed for user=%s: %s", entry.resolver_key, context.user_id, exc)
            result.text, result.offer_escalation, result.degraded = DEGRADED_REPLY, True, True
        result.path.append(TurnState.RESPONDED)
        log.info("Matched entry=%s kind=%s user=%s", entry.id, entry.kind.value, context.user_id)
        return result
