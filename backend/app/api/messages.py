"""Message endpoint: one route, one handler per request variant."""

from __future__ import annotations

import logging
from typing import Any

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from engine.data.page_store import StorageUnavailableError
from engine.pipeline import PageContent
from engine.runtime import RecallRuntime

from .schemas import (
    ClearAllMessage,
    DeletePageMessage,
    GetAllPagesMessage,
    GetStatsMessage,
    Message,
    PageContentMessage,
    SearchPagesMessage,
    parse_message,
)

LOGGER = logging.getLogger(__name__)

bp = Blueprint("messages_api", __name__, url_prefix="/api")


def handle_message(message: Message, runtime: RecallRuntime) -> dict[str, Any]:
    """Execute ``message`` against ``runtime`` and build the response envelope."""

    try:
        match message:
            case PageContentMessage(data=data):
                result = runtime.pipeline.ingest(
                    PageContent(
                        url=data.url,
                        title=data.title,
                        text=data.text,
                        favicon=data.favicon,
                    )
                )
                return result.to_dict(preview=runtime.config.ingest.related_preview)
            case SearchPagesMessage(query=query):
                results = runtime.search.search_recent(query)
                return {"success": True, "results": [record.to_dict() for record in results]}
            case GetAllPagesMessage():
                records = runtime.store.get_all()
                return {"success": True, "results": [record.to_dict() for record in records]}
            case GetStatsMessage():
                return {"success": True, "stats": runtime.store.stats().to_dict()}
            case DeletePageMessage(page_id=page_id):
                runtime.store.delete(page_id)
                return {"success": True}
            case ClearAllMessage():
                runtime.store.clear()
                return {"success": True}
            case _:
                raise TypeError(f"unhandled message variant: {type(message).__name__}")
    except StorageUnavailableError as exc:
        LOGGER.error("Storage unavailable while handling %s: %s", message.type, exc)
        return {"success": False, "error": str(exc)}


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts) or "invalid message"


@bp.post("/messages")
def post_message():
    payload = request.get_json(force=True, silent=True)
    if not isinstance(payload, dict):
        return jsonify({"success": False, "error": "expected a JSON object"}), 400
    try:
        message = parse_message(payload)
    except ValidationError as exc:
        return jsonify({"success": False, "error": _validation_message(exc)}), 400

    runtime: RecallRuntime = current_app.config["RECALL_RUNTIME"]
    return jsonify(handle_message(message, runtime)), 200


__all__ = ["bp", "handle_message"]
