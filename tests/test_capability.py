from __future__ import annotations

import threading
import time

import pytest

from engine.llm.capability import (
    CapabilityState,
    CapabilityUnavailableError,
    LanguageCapability,
)
from engine.llm.ollama_client import OllamaClientError
from tests.helpers import StubOllamaClient


def test_capability_without_client_is_unavailable() -> None:
    capability = LanguageCapability(None, "gemma3", name="summarizer")

    assert capability.state is CapabilityState.UNINITIALIZED
    assert capability.ensure() is CapabilityState.UNAVAILABLE
    assert capability.status()["state"] == "unavailable"
    with pytest.raises(CapabilityUnavailableError):
        capability.complete("hello")


def test_capability_ready_when_model_installed() -> None:
    client = StubOllamaClient(models=["gemma3"], reply="done")
    capability = LanguageCapability(client, "gemma3", system_prompt="be brief")

    assert capability.complete("hello") == "done"
    assert client.prompts == [("gemma3", "hello", "be brief")]
    assert capability.state is CapabilityState.READY


def test_capability_probe_is_memoized() -> None:
    client = StubOllamaClient(models=["gemma3"])
    capability = LanguageCapability(client, "gemma3")

    capability.ensure()
    capability.ensure()
    capability.complete("again")

    assert client.list_calls == 1


def test_missing_model_without_auto_pull_is_unavailable() -> None:
    client = StubOllamaClient(models=[])
    capability = LanguageCapability(client, "gemma3", auto_pull=False)

    assert capability.ensure() is CapabilityState.UNAVAILABLE
    assert client.pulled == []
    assert "not installed" in (capability.status()["detail"] or "")


def test_missing_model_is_pulled_when_allowed() -> None:
    client = StubOllamaClient(models=[])
    capability = LanguageCapability(client, "gemma3", auto_pull=True)

    assert capability.ensure() is CapabilityState.READY
    assert client.pulled == ["gemma3"]


def test_client_error_during_probe_marks_unavailable() -> None:
    class DownClient(StubOllamaClient):
        def has_model(self, model: str) -> bool:
            raise OllamaClientError("connection refused")

    capability = LanguageCapability(DownClient(), "gemma3")

    assert capability.ensure() is CapabilityState.UNAVAILABLE
    assert capability.status()["detail"] == "connection refused"


def test_unexpected_probe_failure_still_settles() -> None:
    class BrokenClient(StubOllamaClient):
        def has_model(self, model: str) -> bool:
            raise KeyError("boom")

    capability = LanguageCapability(BrokenClient(), "gemma3")

    assert capability.ensure() is CapabilityState.UNAVAILABLE


def test_concurrent_callers_share_one_probe() -> None:
    started = threading.Event()
    release = threading.Event()

    class SlowClient(StubOllamaClient):
        def has_model(self, model: str) -> bool:
            self.list_calls += 1
            started.set()
            release.wait(timeout=5)
            return True

    client = SlowClient()
    capability = LanguageCapability(client, "gemma3")
    results: list[CapabilityState] = []

    def worker() -> None:
        results.append(capability.ensure())

    threads = [threading.Thread(target=worker) for _ in range(5)]
    threads[0].start()
    assert started.wait(timeout=5)
    for thread in threads[1:]:
        thread.start()
    time.sleep(0.05)
    assert capability.state is CapabilityState.PROBING
    release.set()
    for thread in threads:
        thread.join(timeout=5)

    assert client.list_calls == 1
    assert results == [CapabilityState.READY] * 5


def test_reset_allows_a_fresh_probe() -> None:
    client = StubOllamaClient(models=[])
    capability = LanguageCapability(client, "gemma3")

    assert capability.ensure() is CapabilityState.UNAVAILABLE
    client.models.append("gemma3")
    capability.reset()

    assert capability.state is CapabilityState.UNINITIALIZED
    assert capability.ensure() is CapabilityState.READY
    assert client.list_calls == 2
