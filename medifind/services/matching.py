"""Approximate string matching for store names and medicine names.

Scores are normalized distances in [0, 1] where 0 is an exact match, so lower
is better and a pass accepts candidates scoring strictly below its threshold.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Iterable, Optional, TypeVar

from rapidfuzz import fuzz, utils

from medifind.schemas.pharmacies import MedicineEntry, StoreRecord

T = TypeVar("T")

# Stricter, so a medicine query is not mistaken for a similarly spelled store
STORE_MATCH_THRESHOLD = 0.3
# Looser, users misspell and abbreviate drug names
MEDICINE_MATCH_THRESHOLD = 0.4


@dataclass(frozen=True)
class MatchCandidate(Generic[T]):
    item: T
    score: float
    key: str


def score_text(query: str, target: str) -> float:
    """Return the normalized distance between a query and one target string.

    Both sides are lower-cased and stripped of punctuation before comparison.
    WRatio picks between full, partial and token-based ratios depending on
    the length difference, which keeps prefixes like "City Pharm" close to
    "City Pharmacy" without letting short fragments match everything.
    """
    similarity = fuzz.WRatio(query, target, processor=utils.default_process)
    return min(1.0, max(0.0, 1.0 - similarity / 100.0))


def rank_matches(
    query: str,
    items: Iterable[T],
    keys: Callable[[T], Iterable[str]],
    threshold: float,
) -> list[MatchCandidate[T]]:
    """Score every item by its best key and return qualifying matches, best first.

    All keys of an item weigh the same. The sort is stable, so among equal
    scores the item seen first keeps precedence.
    """
    candidates: list[MatchCandidate[T]] = []
    for item in items:
        best: Optional[MatchCandidate[T]] = None
        for key in keys(item):
            if not key:
                continue
            score = score_text(query, key)
            if best is None or score < best.score:
                best = MatchCandidate(item=item, score=score, key=key)
        if best is not None and best.score < threshold:
            candidates.append(best)

    candidates.sort(key=lambda candidate: candidate.score)
    return candidates


def best_match(
    query: str,
    items: Iterable[T],
    keys: Callable[[T], Iterable[str]],
    threshold: float,
) -> Optional[MatchCandidate[T]]:
    matches = rank_matches(query, items, keys, threshold)
    return matches[0] if matches else None


def store_name_keys(store: StoreRecord) -> list[str]:
    return [store.store_name]


def medicine_keys(entry: MedicineEntry) -> list[str]:
    return [entry.name, *entry.brands]


def match_store(
    query: str,
    stores: Iterable[StoreRecord],
    threshold: float = STORE_MATCH_THRESHOLD,
) -> Optional[MatchCandidate[StoreRecord]]:
    """Return the store the query names, if any store name clears the threshold."""
    return best_match(query, stores, store_name_keys, threshold)


def match_medicine(
    query: str,
    inventory: Iterable[MedicineEntry],
    threshold: float = MEDICINE_MATCH_THRESHOLD,
) -> Optional[MatchCandidate[MedicineEntry]]:
    """Return the single best inventory entry for the query within one store."""
    return best_match(query, inventory, medicine_keys, threshold)


__all__ = [
    "STORE_MATCH_THRESHOLD",
    "MEDICINE_MATCH_THRESHOLD",
    "MatchCandidate",
    "score_text",
    "rank_matches",
    "best_match",
    "match_store",
    "match_medicine",
]
