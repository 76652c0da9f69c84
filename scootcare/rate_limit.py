from collections import deque
from time import time
from .config import RATE_WINDOW_SECONDS as WINDOW, RATE_MAX_REQUESTS as MAX_REQ
buckets = {}  # user id -> timestamps of requests inside the window

def _forget_idle(now: float):
    for key in [k for k, q in buckets.items() if not q or (now - q[-1]) > WINDOW]:
        del buckets[key]

def allow(user_id: str) -> bool:
    now = time()
    _forget_idle(now)
    q = buckets.setdefault(user_id, deque())
    while q and (now - q[0]) > WINDOW: q.popleft()
    if len(q) >= MAX_REQ: return False
    q.append(now); return True

def reset(): buckets.clear()
