from __future__ import annotations
from typing import Callable, Dict, Optional, Tuple
import copy
import threading
import uuid

from .logger import get_logger

log = get_logger("scootcare.realtime")

ChangeHandler = Callable[[str, Dict], None]

class Broadcaster:
    """In-process publish/subscribe on row changes.

    A subscription names a collection and an equality filter; every
    insert/update/delete whose row matches the filter is delivered to the
    handler as (event, row).
    """

    def __init__(self):
        self._subs: Dict[str, Tuple[str, Dict, ChangeHandler]] = {}
        self._lock = threading.Lock()

    def subscribe(self, collection: str, filters: Optional[Dict], on_change: ChangeHandler) -> str:
        token = uuid.uuid4().hex
        with self._lock:
            self._subs[token] = (collection, dict(filters or {}), on_change)
        log.info("Subscribed %s to %s filter=%s", token, collection, filters)
        return token

    def unsubscribe(self, token: str) -> None:
        with self._lock:
            self._subs.pop(token, None)

    def publish(self, collection: str, event: str, row: Dict) -> None:
        with self._lock:
            targets = [h for (c, f, h) in self._subs.values()
                       if c == collection and all(row.get(k) == v for k, v in f.items())]
        for handler in targets:
            # a broken observer must not fail the write that already happened
            try:
                handler(event, copy.deepcopy(row))
            except Exception:
                log.exception("Realtime handler failed for %s %s", collection, event)
