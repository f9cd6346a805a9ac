"""Weighted fuzzy search over an in-memory snapshot of the page store."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from rapidfuzz import fuzz, utils

from engine.data.page_store import PageRecord, PageStore
from engine.events import drain

LOGGER = logging.getLogger(__name__)

DEFAULT_WEIGHTS: Mapping[str, float] = {
    "title": 0.4,
    "summary": 0.3,
    "tags": 0.2,
    "url": 0.1,
}
DEFAULT_THRESHOLD = 0.4
DEFAULT_MIN_MATCH_CHARS = 2
_MATCH_EPSILON = 1e-9


@dataclass(frozen=True)
class SearchHit:
    record: PageRecord
    score: float
    matched_fields: tuple[str, ...] = ()


def field_similarity(
    query: str, value: str, *, min_match_chars: int = DEFAULT_MIN_MATCH_CHARS
) -> float:
    """Similarity of ``query`` to ``value`` in ``[0, 1]``.

    Values shorter than ``min_match_chars`` never match. ``query`` is aligned
    against windows of a longer value; a value shorter than the query is
    compared whole, so a short value is never found inside a longer query.
    """

    pattern = utils.default_process(query or "")
    text = utils.default_process(value or "")
    if not pattern or len(text) < min_match_chars:
        return 0.0
    if len(text) < len(pattern):
        return fuzz.ratio(pattern, text) / 100.0
    return fuzz.partial_ratio(pattern, text) / 100.0


def _field_values(record: PageRecord) -> dict[str, Sequence[str]]:
    return {
        "title": (record.title,),
        "summary": (record.summary,),
        "tags": record.tags,
        "url": (record.url,),
    }


def score_record(
    query: str,
    record: PageRecord,
    *,
    weights: Mapping[str, float] = DEFAULT_WEIGHTS,
    threshold: float = DEFAULT_THRESHOLD,
    min_match_chars: int = DEFAULT_MIN_MATCH_CHARS,
) -> Optional[SearchHit]:
    """Return a hit when any weighted field is within ``threshold`` of ``query``.

    A field matches when ``1 - similarity`` is strictly below ``threshold``;
    a score landing exactly on the threshold is a miss. Multi-valued fields
    (tags) are scored value by value and the best value counts. The score sums
    ``weight * similarity`` over matching fields, divided by the total weight.
    """

    total_weight = sum(weights.values()) or 1.0
    score = 0.0
    matched: list[str] = []
    for name, values in _field_values(record).items():
        weight = weights.get(name, 0.0)
        if weight <= 0:
            continue
        best = max(
            (
                field_similarity(query, value, min_match_chars=min_match_chars)
                for value in values
            ),
            default=0.0,
        )
        if 1.0 - best < threshold - _MATCH_EPSILON:
            matched.append(name)
            score += weight * best
    if not matched:
        return None
    return SearchHit(record=record, score=score / total_weight, matched_fields=tuple(matched))


class FuzzySearchIndex:
    """Typo-tolerant lookup across title, summary, tags and url.

    The index keeps a snapshot of every stored page and rebuilds it after the
    store publishes a change.
    """

    def __init__(
        self,
        store: PageStore,
        *,
        threshold: float = DEFAULT_THRESHOLD,
        min_match_chars: int = DEFAULT_MIN_MATCH_CHARS,
        weights: Mapping[str, float] | None = None,
    ) -> None:
        self.store = store
        self.threshold = threshold
        self.min_match_chars = max(1, int(min_match_chars))
        self.weights = dict(weights or DEFAULT_WEIGHTS)
        # One pending event is enough to mark the snapshot stale.
        self._events = store.bus.subscribe(maxsize=1)
        self._lock = threading.RLock()
        self._records: list[PageRecord] | None = None

    def close(self) -> None:
        self.store.bus.unsubscribe(self._events)

    def refresh(self) -> list[PageRecord]:
        """Reload the snapshot from the store."""

        with self._lock:
            drain(self._events)
            self._records = self.store.get_all()
            LOGGER.debug("Search snapshot rebuilt with %d pages", len(self._records))
            return list(self._records)

    def snapshot(self) -> list[PageRecord]:
        with self._lock:
            if self._records is None or drain(self._events):
                return self.refresh()
            return list(self._records)

    def search(self, query: str) -> list[SearchHit]:
        """Rank stored pages against ``query``; best match first, ties in id order."""

        records = self.snapshot()
        text = (query or "").strip()
        if not text:
            return [SearchHit(record=record, score=0.0) for record in records]
        if len(utils.default_process(text)) < self.min_match_chars:
            return []
        hits = [
            hit
            for hit in (
                score_record(
                    text,
                    record,
                    weights=self.weights,
                    threshold=self.threshold,
                    min_match_chars=self.min_match_chars,
                )
                for record in records
            )
            if hit is not None
        ]
        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits

    def search_recent(self, query: str) -> list[PageRecord]:
        """Matching pages in display order: newest first."""

        records = [hit.record for hit in self.search(query)]
        return sorted(records, key=lambda record: record.timestamp, reverse=True)


__all__ = [
    "DEFAULT_WEIGHTS",
    "FuzzySearchIndex",
    "SearchHit",
    "field_similarity",
    "score_record",
]
