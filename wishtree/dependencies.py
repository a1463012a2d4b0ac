"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from typing import Optional

from wishtree.config import get_settings
from wishtree.jsonbin import DocumentStore, InMemoryDocumentStore, JsonBinDocumentStore

_document_store: DocumentStore | None = None


def get_document_store() -> Optional[DocumentStore]:
    """
    Return a singleton document store, or None when JSONBin is not
    configured (the routes answer 503 in that case).
    """
    global _document_store
    if _document_store:
        return _document_store

    settings = get_settings()
    if settings.use_in_memory_backends:
        _document_store = InMemoryDocumentStore()
    elif settings.jsonbin_api_key and settings.jsonbin_bin_id:
        _document_store = JsonBinDocumentStore(
            api_key=settings.jsonbin_api_key,
            bin_id=settings.jsonbin_bin_id,
            base_url=settings.jsonbin_base_url,
        )
    return _document_store
