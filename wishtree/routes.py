"""
HTTP routes for the wishes proxy API.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from wishtree.dependencies import get_document_store
from wishtree.jsonbin import DocumentStore, DocumentStoreError
from wishtree.schemas import (
    HealthResponse,
    SaveWishesRequest,
    SaveWishesResponse,
    WishesResponse,
)
from wishtree.wishes import MAX_WISHES

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_store(store: Optional[DocumentStore]) -> DocumentStore:
    if store is None:
        raise HTTPException(status_code=503, detail="JSONBin not configured")
    return store


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(
        status="ok", timestamp=datetime.now(timezone.utc).isoformat()
    )


@router.get("/wishes", response_model=WishesResponse)
def get_wishes(store: Optional[DocumentStore] = Depends(get_document_store)):
    store = _require_store(store)
    try:
        wishes = store.read_wishes()
    except DocumentStoreError as exc:
        logger.error("Error fetching wishes: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to fetch wishes")
    return WishesResponse(wishes=wishes)


@router.put("/wishes", response_model=SaveWishesResponse)
def save_wishes(
    payload: SaveWishesRequest,
    store: Optional[DocumentStore] = Depends(get_document_store),
):
    """
    Replace the whole stored wish array. The last full write wins.
    """
    if len(payload.wishes) > MAX_WISHES:
        raise HTTPException(status_code=400, detail="Too many wishes")
    store = _require_store(store)
    try:
        store.write_wishes([wish.model_dump() for wish in payload.wishes])
    except DocumentStoreError as exc:
        logger.error("Error saving wishes: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to save wishes")
    logger.info("Saved %d wishes", len(payload.wishes))
    return SaveWishesResponse(success=True)
