"""Capture pipeline: enrich page text, persist it, surface related pages."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TypeVar

from observability import start_span

from engine.config import IngestConfig
from engine.data.page_store import PageDraft, PageStore, StorageUnavailableError
from engine.enrich.summarize import Summarizer
from engine.enrich.tags import TagExtractor
from engine.search.related import RelatedPage, RelatednessEngine

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PageContent:
    """Output of the content extractor for one loaded document."""

    url: str
    title: str
    text: str
    favicon: str = ""


@dataclass
class IngestResult:
    success: bool
    page_id: Optional[int] = None
    summary: str = ""
    tags: list[str] = field(default_factory=list)
    related: list[RelatedPage] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self, preview: int = 3) -> dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error or "ingest failed"}
        return {
            "success": True,
            "pageId": self.page_id,
            "summary": self.summary,
            "tags": list(self.tags),
            "relatedPages": len(self.related),
            "related": [item.to_dict() for item in self.related[: max(0, preview)]],
        }


class IngestPipeline:
    """Summarize and tag concurrently, upsert, then query related pages."""

    def __init__(
        self,
        store: PageStore,
        summarizer: Summarizer,
        tag_extractor: TagExtractor,
        relatedness: RelatednessEngine | None = None,
        *,
        config: IngestConfig | None = None,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self.store = store
        self.summarizer = summarizer
        self.tag_extractor = tag_extractor
        self.relatedness = relatedness or RelatednessEngine(store)
        self.config = config or IngestConfig()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=4, thread_name_prefix="recall-enrich"
        )

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)

    def enrich(self, text: str) -> tuple[str, list[str]]:
        """Run summarization and tagging side by side within ``ai_timeout``."""

        summary_future = self._executor.submit(self.summarizer.summarize, text)
        tags_future = self._executor.submit(self.tag_extractor.extract, text)
        wait([summary_future, tags_future], timeout=self.config.ai_timeout)
        summary = self._settle(summary_future, lambda: self.summarizer.fallback(text), "summary")
        tags = self._settle(tags_future, lambda: self.tag_extractor.fallback(text), "tags")
        return summary, list(tags)

    @staticmethod
    def _settle(future: Future, fallback: Callable[[], T], label: str) -> T:
        if not future.done():
            future.cancel()
            LOGGER.warning("%s enrichment timed out; using local fallback", label)
            return fallback()
        exc = future.exception()
        if exc is not None:
            LOGGER.warning("%s enrichment failed (%s); using local fallback", label, exc)
            return fallback()
        return future.result()

    def ingest(self, content: PageContent) -> IngestResult:
        url = content.url or ""
        text = content.text or ""
        if not url.strip():
            return IngestResult(success=False, error="url is required")
        if len(text) < self.config.min_text_chars:
            LOGGER.debug("Skipping %s: only %d characters of text", url, len(text))
            return IngestResult(success=False, error="content too short")

        with start_span(
            "ingest.page",
            attributes={"page.url": url},
            inputs={"title": content.title, "text": text},
        ) as span:
            summary, tags = self.enrich(text)
            try:
                page_id = self.store.upsert(
                    PageDraft(
                        url=url,
                        title=content.title or "",
                        summary=summary,
                        tags=tags,
                        full_text=text[: self.config.full_text_chars],
                        favicon=content.favicon or "",
                    )
                )
                related = self.relatedness.find_related(tags, exclude_url=url)
            except StorageUnavailableError as exc:
                LOGGER.error("Could not save %s: %s", url, exc)
                span.set_attribute("ingest.error", str(exc))
                return IngestResult(success=False, summary=summary, tags=tags, error=str(exc))
            span.set_attribute("ingest.tags", tags)
            span.set_attribute("ingest.related", len(related))

        LOGGER.info("Saved page %s with tags %s (%d related)", content.title or url, tags, len(related))
        return IngestResult(
            success=True,
            page_id=page_id,
            summary=summary,
            tags=tags,
            related=related,
        )


__all__ = ["IngestPipeline", "IngestResult", "PageContent"]
