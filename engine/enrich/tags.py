"""Topical tag extraction with a deterministic word-frequency fallback."""

from __future__ import annotations

import json
import logging
import re
from collections import Counter
from typing import Any, Optional

from engine.llm.capability import LanguageCapability

LOGGER = logging.getLogger(__name__)

MAX_TAGS = 5
DEFAULT_TAG = "General"

TAG_SYSTEM_PROMPT = (
    "You are a helpful assistant that extracts keywords and topics from text. "
    "Always return responses as valid JSON arrays."
)

_TAG_PROMPT_TEMPLATE = (
    "Extract the {count} most important keywords or topics from the following text. "
    "Return ONLY a JSON array of strings, nothing else. "
    'Example: ["keyword1", "keyword2", "keyword3"]\n\n'
    "Text: {text}"
)

_NON_WORD_RE = re.compile(r"[^\w\s]")
_QUOTED_RE = re.compile(r'"([^"]+)"')

STOP_WORDS = frozenset(
    {
        "the", "be", "to", "of", "and", "a", "in", "that", "have", "i",
        "it", "for", "not", "on", "with", "he", "as", "you", "do", "at",
        "this", "but", "his", "by", "from", "they", "we", "say", "her", "she",
        "or", "an", "will", "my", "one", "all", "would", "there", "their",
        "what", "so", "up", "out", "if", "about", "who", "get", "which", "go",
        "me", "when", "make", "can", "like", "time", "no", "just", "him", "know",
        "take", "people", "into", "year", "your", "good", "some", "could", "them",
        "see", "other", "than", "then", "now", "look", "only", "come", "its",
        "think", "also", "back", "after", "use", "two", "how", "our", "work",
        "first", "well", "way", "even", "new", "want", "because", "any", "these",
        "give", "day", "most", "us", "is", "was", "are", "been", "has", "had",
        "were", "said", "did", "having", "may", "should", "am", "being",
    }
)


def extract_tags_fallback(text: str, limit: int = MAX_TAGS) -> list[str]:
    """Return up to ``limit`` capitalised high-frequency words from ``text``.

    Words of three characters or fewer and common English function words are
    ignored. Ties keep the order in which words first appear. When nothing
    qualifies the single tag ``"General"`` is returned.
    """

    words = _NON_WORD_RE.sub(" ", (text or "").lower()).split()
    candidates = [word for word in words if len(word) > 3 and word not in STOP_WORDS]
    # Counter preserves first-insertion order and most_common() sorts stably.
    ranked = Counter(candidates).most_common(limit)
    tags = [word[:1].upper() + word[1:] for word, _ in ranked]
    return tags or [DEFAULT_TAG]


def parse_tag_response(response: str, limit: int = MAX_TAGS) -> list[str]:
    """Parse a model reply into tags; an empty list means nothing usable."""

    try:
        parsed: Any = json.loads(response)
    except ValueError:
        return [match.strip() for match in _QUOTED_RE.findall(response)[:limit] if match.strip()]
    if not isinstance(parsed, list):
        return []
    tags = [item.strip() for item in parsed[:limit] if isinstance(item, str)]
    return [tag for tag in tags if tag]


class TagExtractor:
    """Turns page text into at most five topical labels."""

    def __init__(
        self,
        capability: Optional[LanguageCapability] = None,
        *,
        input_chars: int = 2000,
        limit: int = MAX_TAGS,
    ) -> None:
        self.capability = capability
        self.input_chars = input_chars
        self.limit = limit

    def fallback(self, text: str) -> list[str]:
        return extract_tags_fallback(text, self.limit)

    def extract(self, text: str) -> list[str]:
        if self.capability is None:
            return self.fallback(text)
        prompt = _TAG_PROMPT_TEMPLATE.format(count=self.limit, text=(text or "")[: self.input_chars])
        try:
            response = self.capability.complete(prompt)
        except Exception as exc:  # noqa: BLE001
            LOGGER.debug("Tag extraction via model failed: %s", exc)
            return self.fallback(text)
        tags = parse_tag_response(response, self.limit)
        if not tags:
            LOGGER.debug("Model reply contained no usable tags; using fallback")
            return self.fallback(text)
        return tags


__all__ = [
    "DEFAULT_TAG",
    "MAX_TAGS",
    "STOP_WORDS",
    "TAG_SYSTEM_PROMPT",
    "TagExtractor",
    "extract_tags_fallback",
    "parse_tag_response",
]
