from __future__ import annotations

from engine.data.page_store import PageDraft, PageStore
from engine.search.related import RelatednessEngine, rank_related


def _seed(store: PageStore) -> None:
    store.upsert(PageDraft(url="https://a.dev", title="A", tags=["ai", "ml"]))
    store.upsert(PageDraft(url="https://b.dev", title="B", tags=["ai"]))
    store.upsert(PageDraft(url="https://c.dev", title="C", tags=["cooking"]))


def test_related_pages_ordered_by_shared_tag_count(store: PageStore) -> None:
    _seed(store)

    related = RelatednessEngine(store).find_related(["ai", "ml"])

    assert [(item.record.title, item.match_score) for item in related] == [("A", 2), ("B", 1)]
    assert related[0].common_tags == ("ai", "ml")


def test_related_excludes_the_source_url(store: PageStore) -> None:
    _seed(store)

    related = RelatednessEngine(store).find_related(["ai", "ml"], exclude_url="https://a.dev")

    assert [item.record.url for item in related] == ["https://b.dev"]


def test_related_matches_tags_case_insensitively(store: PageStore) -> None:
    _seed(store)

    related = RelatednessEngine(store).find_related(["AI"])

    assert [item.record.title for item in related] == ["A", "B"]
    assert related[0].common_tags == ("AI",)


def test_related_with_no_tags_is_empty(store: PageStore) -> None:
    _seed(store)

    assert RelatednessEngine(store).find_related([]) == []


def test_related_limit(store: PageStore) -> None:
    _seed(store)

    assert len(RelatednessEngine(store).find_related(["ai"], limit=1)) == 1


def test_equal_scores_keep_input_order(store: PageStore) -> None:
    store.upsert(PageDraft(url="https://z.dev", tags=["rust"]))
    store.upsert(PageDraft(url="https://y.dev", tags=["rust"]))

    related = rank_related(store.get_all(), ["rust"])

    assert [item.record.url for item in related] == ["https://z.dev", "https://y.dev"]


def test_related_serializes_match_fields(store: PageStore) -> None:
    _seed(store)

    payload = RelatednessEngine(store).find_related(["ml"])[0].to_dict()

    assert payload["matchScore"] == 1
    assert payload["commonTags"] == ["ml"]
    assert payload["url"] == "https://a.dev"
