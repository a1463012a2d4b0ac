"""
User actions on the wish tree: place, edit and delete.

Input is validated here before it reaches the store, and edits/deletes of
protected wishes go through the access guard.
"""

from __future__ import annotations

import logging
from typing import Optional

from wishtree.config import Settings, get_settings
from wishtree.replicas import FileLocalReplica, ProxyRemoteReplica
from wishtree.scheduler import ThreadingScheduler
from wishtree.security import (
    AccessGuard,
    hash_password,
    is_password_hash,
    validate_password_strength,
)
from wishtree.store import WishStore
from wishtree.wishes import (
    DEFAULT_COLOR,
    DEFAULT_POSITION,
    MAX_AUTHOR_LENGTH,
    MAX_MESSAGE_LENGTH,
    MAX_WISHES,
    Wish,
    WishValidationError,
    validate_length,
    validate_text_input,
)

logger = logging.getLogger(__name__)


def _validated_message(message: str) -> str:
    validate_text_input(message, "Message")
    return validate_length(message, MAX_MESSAGE_LENGTH, "Message")


def _validated_author(author: str) -> str:
    validate_text_input(author, "Name")
    return validate_length(author, MAX_AUTHOR_LENGTH, "Name")


def _hashed_new_password(password: str) -> str:
    valid, error = validate_password_strength(password)
    if not valid:
        raise WishValidationError(error)
    return hash_password(password)


class WishBoard:
    def __init__(self, store: WishStore, guard: AccessGuard):
        self.store = store
        self.guard = guard

    @property
    def wishes(self) -> list[Wish]:
        return self.store.wishes

    def load(self) -> list[Wish]:
        return self.store.load()

    def place_wish(
        self,
        message: str,
        author: str,
        color: str = DEFAULT_COLOR,
        x: float = DEFAULT_POSITION,
        y: float = DEFAULT_POSITION,
        password: str = "",
    ) -> Wish:
        if len(self.store.wishes) >= MAX_WISHES:
            raise WishValidationError("The tree is full")
        partial = {
            "message": _validated_message(message),
            "author": _validated_author(author),
            "color": color,
            "x": x,
            "y": y,
            "password": _hashed_new_password(password) if password else "",
        }
        wish = self.store.add(partial)
        logger.info("Placed wish %s", wish.id)
        return wish

    def edit_wish(
        self,
        wish_id: str,
        attempt: str = "",
        *,
        message: Optional[str] = None,
        author: Optional[str] = None,
        color: Optional[str] = None,
        x: Optional[float] = None,
        y: Optional[float] = None,
        password: Optional[str] = None,
    ) -> Optional[Wish]:
        """
        Apply changes to a wish after checking its password.

        Returns None when the wish no longer exists. Raises
        ``AccessDeniedError`` subclasses when the guard rejects the attempt.
        """
        existing = self.store.get(wish_id)
        if existing is None:
            return None

        self.guard.authorize(wish_id, existing.password, attempt)

        if password:
            new_password = _hashed_new_password(password)
        elif existing.password and not is_password_hash(existing.password):
            # Verified legacy plaintext secret: store it hashed from now on.
            new_password = hash_password(attempt)
        else:
            new_password = ""

        updated = {
            "id": existing.id,
            "message": _validated_message(message) if message is not None else existing.message,
            "author": _validated_author(author) if author is not None else existing.author,
            "color": color if color is not None else existing.color,
            "x": x if x is not None else existing.x,
            "y": y if y is not None else existing.y,
            "password": new_password,
        }
        return self.store.edit(updated)

    def delete_wish(self, wish_id: str, attempt: str = "") -> bool:
        existing = self.store.get(wish_id)
        if existing is None:
            return False
        self.guard.authorize(wish_id, existing.password, attempt)
        deleted = self.store.delete(wish_id)
        if deleted:
            logger.info("Deleted wish %s", wish_id)
        return deleted

    def close(self) -> None:
        """Send any pending remote write before the session ends."""
        self.store.flush()
        self.store.close()


def create_board(settings: Optional[Settings] = None) -> WishBoard:
    settings = settings or get_settings()
    store = WishStore(
        remote=ProxyRemoteReplica(settings.wishes_api_url),
        local=FileLocalReplica(settings.local_store_dir),
        scheduler=ThreadingScheduler(),
        debounce_seconds=settings.persist_debounce_seconds,
    )
    return WishBoard(store, AccessGuard())
