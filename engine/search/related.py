"""Tag-overlap relatedness over the stored pages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from engine.data.page_store import PageRecord, PageStore


@dataclass(frozen=True)
class RelatedPage:
    record: PageRecord
    match_score: int
    common_tags: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        payload = self.record.to_dict()
        payload["matchScore"] = self.match_score
        payload["commonTags"] = list(self.common_tags)
        return payload


def rank_related(
    records: Sequence[PageRecord],
    tags: Sequence[str],
    exclude_url: Optional[str] = None,
) -> list[RelatedPage]:
    """Score ``records`` by how many of ``tags`` they share (case-insensitive).

    Records with no shared tag are dropped. Equal scores keep the order of
    ``records``. ``common_tags`` follows the query order and casing.
    """

    if not tags:
        return []
    related: list[RelatedPage] = []
    for record in records:
        if exclude_url is not None and record.url == exclude_url:
            continue
        own = {tag.lower() for tag in record.tags}
        common = tuple(tag for tag in tags if tag.lower() in own)
        if common:
            related.append(RelatedPage(record=record, match_score=len(common), common_tags=common))
    related.sort(key=lambda item: item.match_score, reverse=True)
    return related


class RelatednessEngine:
    def __init__(self, store: PageStore) -> None:
        self.store = store

    def find_related(
        self,
        tags: Sequence[str],
        exclude_url: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[RelatedPage]:
        if not tags:
            return []
        related = rank_related(self.store.get_all(), tags, exclude_url)
        if limit is not None:
            return related[: max(0, limit)]
        return related


__all__ = ["RelatedPage", "RelatednessEngine", "rank_related"]
