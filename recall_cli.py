#!/usr/bin/env python3
"""Command-line access to the knowledge store."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Sequence

from backend.app.logging_setup import setup_logging
from engine.config import RecallConfig, load_config
from engine.data.page_store import PageRecord, StorageUnavailableError
from engine.pipeline import PageContent
from engine.runtime import RecallRuntime, build_runtime


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Capture, search and relate saved pages")
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--db", help="Override the page database path")
    parser.add_argument("--no-llm", action="store_true", help="Use the local fallbacks only")
    parser.add_argument("--json", action="store_true", help="Print raw JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Summarize, tag and save a page")
    ingest.add_argument("url")
    ingest.add_argument("--title", default="")
    ingest.add_argument("--file", help="Read page text from a file (default: stdin)")

    search = sub.add_parser("search", help="Fuzzy search saved pages")
    search.add_argument("query", nargs="*", help="Search terms (blank lists everything)")

    related = sub.add_parser("related", help="Pages sharing tags")
    related.add_argument("tags", nargs="+")
    related.add_argument("--exclude-url")
    related.add_argument("--limit", type=int, default=10)

    sub.add_parser("list", help="List every saved page")
    sub.add_parser("stats", help="Show store statistics")

    delete = sub.add_parser("delete", help="Delete a page by id")
    delete.add_argument("page_id", type=int)

    clear = sub.add_parser("clear", help="Delete every saved page")
    clear.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    return parser


def _format_time(timestamp: int | None) -> str:
    if timestamp is None:
        return "-"
    return datetime.fromtimestamp(timestamp / 1000).strftime("%Y-%m-%d %H:%M")


def _print_records(records: Sequence[PageRecord]) -> None:
    if not records:
        print("No pages found.")
        return
    for record in records:
        tags = ", ".join(record.tags)
        print(f"[{record.id}] {record.title or '(untitled)'} -> {record.url}")
        print(f"    {_format_time(record.timestamp)}  tags: {tags}")
        if record.summary:
            print(f"    {record.summary}")


def _run(args: argparse.Namespace, runtime: RecallRuntime) -> int:
    if args.command == "ingest":
        if args.file:
            text = Path(args.file).read_text(encoding="utf-8")
        else:
            text = sys.stdin.read()
        result = runtime.pipeline.ingest(PageContent(url=args.url, title=args.title, text=text))
        payload = result.to_dict(preview=runtime.config.ingest.related_preview)
        if args.json or not result.success:
            print(json.dumps(payload, indent=2))
            return 0 if result.success else 1
        print(f"Saved [{result.page_id}] tags: {', '.join(result.tags)}")
        print(f"Summary: {result.summary}")
        for item in result.related[: runtime.config.ingest.related_preview]:
            print(f"  related ({item.match_score}): {item.record.title} -> {item.record.url}")
        return 0

    if args.command == "search":
        records = runtime.search.search_recent(" ".join(args.query))
    elif args.command == "list":
        records = runtime.store.get_all()
    elif args.command == "related":
        related = runtime.relatedness.find_related(
            args.tags, exclude_url=args.exclude_url, limit=args.limit
        )
        if args.json:
            print(json.dumps([item.to_dict() for item in related], indent=2))
            return 0
        if not related:
            print("No related pages.")
        for item in related:
            print(f"({item.match_score}) [{item.record.id}] {item.record.title} -> {item.record.url}")
            print(f"    common: {', '.join(item.common_tags)}")
        return 0
    elif args.command == "stats":
        stats = runtime.store.stats()
        if args.json:
            print(json.dumps(stats.to_dict(), indent=2))
        else:
            print(f"Pages: {stats.total_pages}")
            print(f"Tags:  {stats.total_tags}")
            print(f"Oldest: {_format_time(stats.oldest_entry)}")
            print(f"Newest: {_format_time(stats.newest_entry)}")
        return 0
    elif args.command == "delete":
        removed = runtime.store.delete(args.page_id)
        print(f"Deleted page {args.page_id}." if removed else f"No page with id {args.page_id}.")
        return 0
    elif args.command == "clear":
        if not args.yes:
            answer = input("Delete every saved page? [y/N] ")
            if answer.strip().lower() not in {"y", "yes"}:
                print("Aborted.")
                return 1
        removed = runtime.store.clear()
        print(f"Removed {removed} pages.")
        return 0
    else:  # pragma: no cover - argparse rejects unknown commands
        raise SystemExit(f"unknown command {args.command}")

    if args.json:
        print(json.dumps([record.to_dict() for record in records], indent=2))
    else:
        _print_records(records)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(console_level=logging.DEBUG if args.verbose else logging.WARNING)
    cfg = load_config(args.config)
    if args.db:
        cfg = _with_db_path(cfg, Path(args.db))
    try:
        with build_runtime(cfg, use_llm=not args.no_llm) as runtime:
            return _run(args, runtime)
    except StorageUnavailableError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


def _with_db_path(cfg: RecallConfig, db_path: Path) -> RecallConfig:
    return replace(cfg, store=replace(cfg.store, db_path=db_path.expanduser().resolve()))


if __name__ == "__main__":
    raise SystemExit(main())
