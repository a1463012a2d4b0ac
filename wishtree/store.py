"""
In-memory wish collection with local and debounced remote persistence.

The collection held here is authoritative for the session. After every
mutation the full snapshot is written to the local replica right away and
to the remote replica once mutations have been quiet for the debounce
window. Replica failures are logged and never reach the caller.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from wishtree.replicas import (
    LOCAL_STORAGE_KEY,
    LocalReplica,
    RemoteReplica,
    encode_snapshot,
)
from wishtree.scheduler import DebouncedTask, Scheduler, ThreadingScheduler
from wishtree.wishes import Wish, new_wish_id, now_ms, sanitize_wish, sanitize_wishes

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.5


class WishStore:
    def __init__(
        self,
        remote: RemoteReplica,
        local: LocalReplica,
        scheduler: Optional[Scheduler] = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        key: str = LOCAL_STORAGE_KEY,
    ):
        self._remote = remote
        self._local = local
        self._key = key
        self._wishes: list[Wish] = []
        self._remote_write = DebouncedTask(
            scheduler or ThreadingScheduler(), debounce_seconds, self._push_remote
        )

    @property
    def wishes(self) -> list[Wish]:
        return list(self._wishes)

    def get(self, wish_id: str) -> Optional[Wish]:
        for wish in self._wishes:
            if wish.id == wish_id:
                return wish
        return None

    def load(self) -> list[Wish]:
        """
        Replace the collection with the remote replica's content, or the
        local snapshot when the remote one is empty or unavailable.
        """
        try:
            remote_records = self._remote.fetch_wishes()
        except Exception:
            logger.exception("Failed to load wishes from remote replica")
            remote_records = []

        wishes = sanitize_wishes(remote_records)
        if wishes:
            logger.info("Loaded %d wishes from remote replica", len(wishes))
        else:
            wishes = self._load_local()
        self._wishes = wishes
        return self.wishes

    def _load_local(self) -> list[Wish]:
        try:
            blob = self._local.read(self._key)
        except Exception:
            logger.exception("Failed to read local replica")
            return []
        if not blob:
            return []
        try:
            parsed = json.loads(blob)
        except ValueError as exc:
            logger.error("Failed to parse local replica: %s", exc)
            return []
        wishes = sanitize_wishes(parsed)
        logger.info("Loaded %d wishes from local replica", len(wishes))
        return wishes

    def add(self, partial: Any) -> Wish:
        wish = sanitize_wish(partial)
        wish.id = new_wish_id()
        wish.created_at = now_ms()
        self._wishes.append(wish)
        self.persist()
        return wish

    def edit(self, updated: Any) -> Optional[Wish]:
        """
        Replace the wish with the same id. Unknown ids are ignored so a stale
        reference cannot fail the caller.
        """
        wish = sanitize_wish(updated)
        for index, existing in enumerate(self._wishes):
            if existing.id != wish.id:
                continue
            wish.created_at = existing.created_at
            if not wish.password:
                wish.password = existing.password
            self._wishes[index] = wish
            self.persist()
            return wish

        logger.debug("Ignoring edit for unknown wish %s", wish.id)
        return None

    def delete(self, wish_id: str) -> bool:
        remaining = [w for w in self._wishes if w.id != wish_id]
        if len(remaining) == len(self._wishes):
            return False
        self._wishes = remaining
        self.persist()
        return True

    def persist(self) -> None:
        snapshot = [sanitize_wish(w).to_dict() for w in self._wishes]
        try:
            self._local.write(self._key, encode_snapshot(snapshot))
        except Exception:
            logger.exception("Failed to save wishes to local replica")
        self._remote_write.trigger(snapshot)

    @property
    def remote_write_pending(self) -> bool:
        return self._remote_write.pending

    def flush(self) -> bool:
        """Send a pending remote write now instead of waiting out the window."""
        return self._remote_write.flush()

    def close(self) -> None:
        self._remote_write.cancel()

    def _push_remote(self, snapshot: list[dict]) -> None:
        try:
            saved = self._remote.save_wishes(snapshot)
        except Exception:
            logger.exception("Failed to save wishes to remote replica")
            return
        if saved:
            logger.info("Saved %d wishes to remote replica", len(snapshot))
        else:
            logger.warning("Remote replica did not accept %d wishes", len(snapshot))
