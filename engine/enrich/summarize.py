"""Short page synopses from the summary model, or a truncated excerpt."""

from __future__ import annotations

import logging
from typing import Optional

from engine.llm.capability import LanguageCapability

LOGGER = logging.getLogger(__name__)

EMPTY_SUMMARY = "Could not generate summary"

SUMMARY_SYSTEM_PROMPT = (
    "You summarize web pages. Reply with a short list of the key points in plain "
    "text: no markdown, no headings, at most three short sentences."
)


def truncate_summary(text: str, limit: int = 200) -> str:
    excerpt = (text or "")[:limit].strip()
    if len(text or "") > limit:
        return excerpt + "..."
    return excerpt


class Summarizer:
    def __init__(
        self,
        capability: Optional[LanguageCapability] = None,
        *,
        fallback_chars: int = 200,
    ) -> None:
        self.capability = capability
        self.fallback_chars = fallback_chars

    def fallback(self, text: str) -> str:
        return truncate_summary(text, self.fallback_chars)

    def summarize(self, text: str) -> str:
        """Return a synopsis of ``text``; never raises."""

        if self.capability is None:
            return self.fallback(text)
        try:
            summary = self.capability.complete(f"Summarize the following text:\n\n{text}")
        except Exception as exc:  # noqa: BLE001
            LOGGER.debug("Summarization via model failed: %s", exc)
            return self.fallback(text)
        return summary or EMPTY_SUMMARY


__all__ = ["EMPTY_SUMMARY", "SUMMARY_SYSTEM_PROMPT", "Summarizer", "truncate_summary"]
