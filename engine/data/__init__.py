"""Data layer for captured pages."""

from .page_store import PageDraft, PageRecord, PageStore, StorageUnavailableError, StoreStats

__all__ = ["PageDraft", "PageRecord", "PageStore", "StorageUnavailableError", "StoreStats"]
