"""
Replicas of the wish collection: the remote proxy-backed document and a
local snapshot blob, each with an in-memory double for tests.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Protocol

import requests

logger = logging.getLogger(__name__)

LOCAL_STORAGE_KEY = "mm-wishes"
REQUEST_TIMEOUT = 30  # seconds


class RemoteReplica(Protocol):
    """Full-collection reads and writes against the remote document store."""

    def fetch_wishes(self) -> list:
        ...

    def save_wishes(self, records: list[dict]) -> bool:
        ...


class LocalReplica(Protocol):
    """String-keyed blob storage for the local fallback snapshot."""

    def read(self, key: str) -> Optional[str]:
        ...

    def write(self, key: str, blob: str) -> None:
        ...


@dataclass
class ProxyRemoteReplica:
    """
    Client for the backend proxy's ``/wishes`` endpoint.

    Never raises: a store that is not configured (503) or unreachable reads as
    an empty collection and a failed save returns False.
    """

    base_url: str
    timeout: float = REQUEST_TIMEOUT

    @property
    def url(self) -> str:
        return f"{self.base_url.rstrip('/')}/wishes"

    def fetch_wishes(self) -> list:
        try:
            response = requests.get(self.url, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("Error fetching wishes: %s", exc)
            return []

        if response.status_code == 503:
            logger.warning("Document store not configured on backend, using local replica")
            return []
        if not response.ok:
            logger.error(
                "Failed to fetch wishes: %s %s", response.status_code, response.reason
            )
            return []

        try:
            payload = response.json()
        except ValueError:
            logger.error("Wishes response was not JSON")
            return []
        if not isinstance(payload, dict):
            return []
        wishes = payload.get("wishes") or []
        if not isinstance(wishes, list):
            logger.warning("Wishes response is not an array")
            return []
        return wishes

    def save_wishes(self, records: list[dict]) -> bool:
        try:
            response = requests.put(
                self.url, json={"wishes": records}, timeout=self.timeout
            )
        except requests.RequestException as exc:
            logger.error("Error saving wishes: %s", exc)
            return False

        if response.status_code == 503:
            logger.warning("Document store not configured on backend, kept local replica only")
            return False
        if not response.ok:
            logger.error(
                "Failed to save wishes: %s %s", response.status_code, response.reason
            )
            return False
        return True


@dataclass
class InMemoryRemoteReplica:
    """Test double that remembers every full-collection save."""

    records: list = field(default_factory=list)
    available: bool = True
    saves: list = field(default_factory=list)

    def fetch_wishes(self) -> list:
        if not self.available:
            return []
        return json.loads(json.dumps(self.records))

    def save_wishes(self, records: list[dict]) -> bool:
        if not self.available:
            return False
        snapshot = json.loads(json.dumps(records))
        self.saves.append(snapshot)
        self.records = snapshot
        return True


@dataclass
class FileLocalReplica:
    """Stores each key as ``<directory>/<key>.json``."""

    directory: str

    def _path(self, key: str) -> Path:
        return Path(self.directory) / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def write(self, key: str, blob: str) -> None:
        path = self._path(key)
        os.makedirs(path.parent, exist_ok=True)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(blob, encoding="utf-8")
        os.replace(tmp_path, path)


@dataclass
class InMemoryLocalReplica:
    blobs: dict = field(default_factory=dict)
    fail_writes: bool = False

    def read(self, key: str) -> Optional[str]:
        return self.blobs.get(key)

    def write(self, key: str, blob: str) -> None:
        if self.fail_writes:
            raise OSError("local replica is read-only")
        self.blobs[key] = blob


def encode_snapshot(records: list[dict[str, Any]]) -> str:
    return json.dumps(records, ensure_ascii=False)
