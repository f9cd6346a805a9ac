"""Lazily probed, memoized access to a generative model hosted by Ollama.

A :class:`LanguageCapability` moves through ``UNINITIALIZED -> PROBING ->
{READY | UNAVAILABLE}`` exactly once. The first caller runs the probe; any
caller arriving while the probe is in flight waits for its outcome instead of
probing again. ``reset()`` returns the capability to ``UNINITIALIZED`` so the
next use probes afresh.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Optional

from .ollama_client import OllamaClient, OllamaClientError

LOGGER = logging.getLogger(__name__)


class CapabilityState(str, Enum):
    UNINITIALIZED = "uninitialized"
    PROBING = "probing"
    READY = "ready"
    UNAVAILABLE = "unavailable"


class CapabilityUnavailableError(RuntimeError):
    """Raised when the generative model cannot be used in this environment."""


class LanguageCapability:
    """Single-flight availability probe plus prompt helper for one model."""

    def __init__(
        self,
        client: Optional[OllamaClient],
        model: str,
        *,
        name: str = "llm",
        system_prompt: str | None = None,
        auto_pull: bool = False,
        probe_timeout: float = 900.0,
    ) -> None:
        self.client = client
        self.model = model
        self.name = name
        self.system_prompt = system_prompt
        self.auto_pull = auto_pull
        self.probe_timeout = probe_timeout
        self._lock = threading.RLock()
        self._cond = threading.Condition(self._lock)
        self._state = CapabilityState.UNINITIALIZED
        self._detail: str | None = None

    @property
    def state(self) -> CapabilityState:
        with self._lock:
            return self._state

    def status(self) -> dict:
        with self._lock:
            return {
                "name": self.name,
                "model": self.model,
                "state": self._state.value,
                "detail": self._detail,
            }

    def reset(self) -> None:
        with self._lock:
            if self._state is CapabilityState.PROBING:
                return
            self._state = CapabilityState.UNINITIALIZED
            self._detail = None

    def ensure(self) -> CapabilityState:
        """Probe on first use and return the settled state."""

        with self._lock:
            if self._state in (CapabilityState.READY, CapabilityState.UNAVAILABLE):
                return self._state
            if self._state is CapabilityState.PROBING:
                self._cond.wait_for(
                    lambda: self._state is not CapabilityState.PROBING,
                    timeout=self.probe_timeout,
                )
                if self._state is CapabilityState.PROBING:
                    return CapabilityState.UNAVAILABLE
                return self._state
            self._state = CapabilityState.PROBING

        try:
            ready, detail = self._probe()
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("%s capability probe failed", self.name)
            ready, detail = False, str(exc)

        with self._lock:
            self._state = CapabilityState.READY if ready else CapabilityState.UNAVAILABLE
            self._detail = detail
            self._cond.notify_all()
            settled = self._state
        if ready:
            LOGGER.info("%s capability ready (model=%s)", self.name, self.model)
        else:
            LOGGER.log(
                logging.INFO if self.client is None else logging.WARNING,
                "%s capability unavailable (model=%s): %s; using local fallback",
                self.name,
                self.model,
                detail,
            )
        return settled

    def _probe(self) -> tuple[bool, str | None]:
        if self.client is None:
            return False, "no Ollama client configured"
        try:
            if self.client.has_model(self.model):
                return True, None
            if not self.auto_pull:
                return False, f"model {self.model!r} is not installed"
            LOGGER.info("Downloading %s model %s", self.name, self.model)

            def _progress(pct: int, message: str) -> None:
                LOGGER.debug("%s model download %s%% %s", self.name, pct, message)

            self.client.pull_model(self.model, on_progress=_progress)
            if self.client.has_model(self.model):
                return True, None
            return False, f"model {self.model!r} missing after pull"
        except OllamaClientError as exc:
            return False, str(exc)

    def complete(self, text: str) -> str:
        """Prompt the model with ``text`` using the configured system prompt."""

        if self.ensure() is not CapabilityState.READY or self.client is None:
            raise CapabilityUnavailableError(f"{self.name} capability unavailable")
        return self.client.prompt(self.model, text, system=self.system_prompt)


__all__ = ["CapabilityState", "CapabilityUnavailableError", "LanguageCapability"]
