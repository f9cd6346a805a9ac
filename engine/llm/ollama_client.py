"""Thin HTTP client around the Ollama REST API used for page enrichment."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Sequence

import requests

from observability import start_span

ProgressCallback = Callable[[int, str], None] | None

_PULL_TIMEOUT = 600.0


class OllamaClientError(RuntimeError):
    """Transport failure or malformed reply from the Ollama server."""


@dataclass(slots=True)
class ChatMessage:
    role: str
    content: str


def _message_to_dict(message: ChatMessage | Mapping[str, Any]) -> dict[str, str]:
    if isinstance(message, ChatMessage):
        role, content = message.role, message.content
    else:
        role, content = message.get("role"), message.get("content")
    if not isinstance(role, str) or not isinstance(content, str):
        raise OllamaClientError(f"chat message needs string role and content: {message!r}")
    return {"role": role, "content": content}


def _normalize_model(name: str) -> str:
    """``gemma3`` and ``gemma3:latest`` name the same local model."""

    base, _, tag = (name or "").strip().partition(":")
    base, tag = base.strip(), tag.strip()
    if not base:
        return ""
    if not tag or tag.lower() == "latest":
        tag = "latest"
    return f"{base}:{tag}"


def _model_available(target: str, installed: Iterable[str]) -> bool:
    wanted = _normalize_model(target)
    return bool(wanted) and any(_normalize_model(name) == wanted for name in installed)


class OllamaClient:
    """Chat, model inventory and model download against one Ollama host."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def _call(self, method: str, path: str, **kwargs: Any) -> Any:
        """Issue one request and decode its JSON body."""

        sender = self._session.post if method == "POST" else self._session.get
        try:
            response = sender(f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise OllamaClientError(f"{method} {path} failed: {exc}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise OllamaClientError(f"{method} {path} returned invalid JSON") from exc

    def chat(
        self,
        model: str,
        messages: Sequence[ChatMessage | Mapping[str, Any]],
        options: dict | None = None,
    ) -> str:
        """Return the assistant reply, stripped; an empty reply is ``""``."""

        body: dict[str, Any] = {
            "model": model,
            "messages": [_message_to_dict(message) for message in messages],
            "stream": False,
        }
        if options:
            body["options"] = options
        with start_span(
            "ollama.chat",
            attributes={"llm.model": model},
            inputs={"message_count": len(messages)},
        ) as span:
            data = self._call("POST", "/api/chat", json=body)
            message = data.get("message") if isinstance(data, Mapping) else None
            reply = message.get("content") if isinstance(message, Mapping) else None
            if reply is None and isinstance(data, Mapping):
                reply = data.get("response")
            if not isinstance(reply, str):
                raise OllamaClientError("chat reply has no message content")
            span.set_attribute("llm.response_chars", len(reply.strip()))
            return reply.strip()

    def prompt(self, model: str, text: str, *, system: str | None = None) -> str:
        messages = [ChatMessage(role="system", content=system)] if system else []
        messages.append(ChatMessage(role="user", content=text))
        return self.chat(model, messages)

    def list_models(self) -> list[str]:
        with start_span("ollama.list_models", attributes={"ollama.host": self.base_url}) as span:
            data = self._call("GET", "/api/tags")
            entries = data.get("models", []) if isinstance(data, Mapping) else []
            names = [
                entry.get("name") if isinstance(entry, Mapping) else entry for entry in entries
            ]
            models = [name.strip() for name in names if isinstance(name, str) and name.strip()]
            span.set_attribute("ollama.model_count", len(models))
            return models

    def has_model(self, model: str) -> bool:
        """Whether ``model`` is installed locally.

        Transport failures propagate as :class:`OllamaClientError` so callers
        can tell "Ollama is down" apart from "model not installed".
        """

        if not model:
            return False
        return _model_available(model, self.list_models())

    def pull_model(self, model: str, on_progress: ProgressCallback = None) -> None:
        """Download ``model`` via ``/api/pull``, reporting ``(percent, status)`` per line."""

        with start_span("ollama.pull", attributes={"llm.model": model}):
            try:
                with self._session.post(
                    f"{self.base_url}/api/pull",
                    json={"name": model},
                    stream=True,
                    timeout=max(self.timeout, _PULL_TIMEOUT),
                ) as response:
                    response.raise_for_status()
                    for line in response.iter_lines():
                        status = _decode_progress(line)
                        if status is None:
                            continue
                        if status.get("error"):
                            raise OllamaClientError(f"pull {model}: {status['error']}")
                        if on_progress:
                            on_progress(_percent(status), str(status.get("status") or ""))
            except requests.RequestException as exc:
                raise OllamaClientError(f"pull {model} failed: {exc}") from exc


def _decode_progress(line: bytes) -> dict[str, Any] | None:
    if not line:
        return None
    try:
        status = json.loads(line.decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    return status if isinstance(status, dict) else None


def _percent(status: Mapping[str, Any]) -> int:
    total, completed = status.get("total"), status.get("completed")
    if not isinstance(total, int) or total <= 0 or not isinstance(completed, int):
        return 0
    return max(0, min(100, completed * 100 // total))


__all__ = ["ChatMessage", "OllamaClient", "OllamaClientError"]
