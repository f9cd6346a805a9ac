"""Shared test doubles for the knowledge-store tests."""

from __future__ import annotations


class FakeClock:
    """Deterministic wall clock advancing one second per reading."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        self.now += 1.0
        return self.now


class StubOllamaClient:
    """In-memory stand-in for ``OllamaClient``."""

    def __init__(
        self,
        *,
        models: list[str] | None = None,
        reply: str | Exception = "",
    ) -> None:
        self.models = list(models or [])
        self.reply = reply
        self.list_calls = 0
        self.prompts: list[tuple[str, str, str | None]] = []
        self.pulled: list[str] = []

    def has_model(self, model: str) -> bool:
        self.list_calls += 1
        return model in self.models

    def pull_model(self, model: str, on_progress=None) -> None:  # type: ignore[no-untyped-def]
        self.pulled.append(model)
        if on_progress:
            on_progress(100, "success")
        self.models.append(model)

    def prompt(self, model: str, text: str, *, system: str | None = None) -> str:
        self.prompts.append((model, text, system))
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply
