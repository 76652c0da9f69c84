"""Keyword-overlap matcher for the chat widget.

A query and a knowledge entry's question pattern are both lower-cased and
split on whitespace. Each distinct query token scores one point when some
pattern token is a substring of it or it is a substring of some pattern
token, so "charger" still hits "charge" and "brake" hits "brakes".
The entry with the strictly highest score wins; ties go to the entry seen
first. No entry scoring above zero means no match.

This is a heuristic, not a statistically sound matcher. Short or common
tokens ("a", "my", "is") produce false positives because they are
substrings of many words. There is no stemming, no stopword removal and no
weighting by token rarity.
"""
from __future__ import annotations
from typing import Iterable, Optional, Set

from .models import KnowledgeEntry

def tokenize(text: str) -> Set[str]:
    return set((text or "").lower().split())

def score(query_tokens: Set[str], entry: KnowledgeEntry) -> int:
    pattern_tokens = tokenize(entry.question_pattern)
    return sum(1 for q in query_tokens
               if any(p in q or q in p for p in pattern_tokens))

def match(query: str, entries: Iterable[KnowledgeEntry]) -> Optional[KnowledgeEntry]:
    query_tokens = tokenize(query)
    if not query_tokens:
        return None
    best, best_score = None, 0
    for entry in entries:
        s = score(query_tokens, entry)
        if s > best_score:
            best, best_score = entry, s
    return best
