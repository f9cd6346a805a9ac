"""Explicit wiring of the knowledge-store components."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from engine.config import RecallConfig
from engine.data.page_store import PageStore
from engine.enrich.summarize import SUMMARY_SYSTEM_PROMPT, Summarizer
from engine.enrich.tags import TAG_SYSTEM_PROMPT, TagExtractor
from engine.llm.capability import LanguageCapability
from engine.llm.ollama_client import OllamaClient
from engine.pipeline import IngestPipeline
from engine.search.fuzzy import FuzzySearchIndex
from engine.search.related import RelatednessEngine

LOGGER = logging.getLogger(__name__)


@dataclass
class RecallRuntime:
    config: RecallConfig
    store: PageStore
    summary_capability: LanguageCapability
    tag_capability: LanguageCapability
    relatedness: RelatednessEngine
    search: FuzzySearchIndex
    pipeline: IngestPipeline

    def capability_status(self) -> list[dict]:
        return [self.summary_capability.status(), self.tag_capability.status()]

    def close(self) -> None:
        self.pipeline.close()
        self.search.close()
        self.store.close()

    def __enter__(self) -> "RecallRuntime":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def build_runtime(
    config: RecallConfig,
    *,
    store: Optional[PageStore] = None,
    client: Optional[OllamaClient] = None,
    use_llm: bool = True,
) -> RecallRuntime:
    """Open the store and construct every component around it.

    ``use_llm=False`` leaves both capabilities without a client so every page
    is enriched with the deterministic fallbacks.
    """

    page_store = store or PageStore(config.store.db_path)
    if use_llm and client is None:
        client = OllamaClient(config.ollama.base_url, timeout=config.ollama.timeout)
    if not use_llm:
        client = None

    summary_capability = LanguageCapability(
        client,
        config.models.summary,
        name="summarizer",
        system_prompt=SUMMARY_SYSTEM_PROMPT,
        auto_pull=config.models.auto_pull,
    )
    tag_capability = LanguageCapability(
        client,
        config.models.tags,
        name="tagger",
        system_prompt=TAG_SYSTEM_PROMPT,
        auto_pull=config.models.auto_pull,
    )
    relatedness = RelatednessEngine(page_store)
    search = FuzzySearchIndex(
        page_store,
        threshold=config.search.threshold,
        min_match_chars=config.search.min_match_chars,
        weights=config.search.weights,
    )
    pipeline = IngestPipeline(
        page_store,
        Summarizer(summary_capability, fallback_chars=config.ingest.summary_fallback_chars),
        TagExtractor(tag_capability, input_chars=config.ingest.tag_input_chars),
        relatedness,
        config=config.ingest,
    )
    LOGGER.debug("Knowledge store runtime ready (db=%s, llm=%s)", page_store.path, use_llm)
    return RecallRuntime(
        config=config,
        store=page_store,
        summary_capability=summary_capability,
        tag_capability=tag_capability,
        relatedness=relatedness,
        search=search,
        pipeline=pipeline,
    )


__all__ = ["RecallRuntime", "build_runtime"]
