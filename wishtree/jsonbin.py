"""
Document store abstraction for the hosted JSONBin bin and in-memory testing.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Protocol

import requests

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30  # seconds


class DocumentStoreError(RuntimeError):
    """Raised when the hosted document store rejects or fails a request."""


class DocumentStore(Protocol):
    """The single JSON document holding the whole wish array."""

    def read_wishes(self) -> list:
        ...

    def write_wishes(self, wishes: list) -> None:
        ...


@dataclass
class InMemoryDocumentStore:
    """Test double for document store interactions."""

    record: list = field(default_factory=list)

    def read_wishes(self) -> list:
        return json.loads(json.dumps(self.record))

    def write_wishes(self, wishes: list) -> None:
        # Round-trip through JSON to mimic the real upload.
        self.record = json.loads(json.dumps(wishes, default=str))

    def reset(self) -> None:
        self.record = []


@dataclass
class JsonBinDocumentStore:
    """
    JSONBin v3 client; the bin's record is the raw wish array.
    """

    api_key: str
    bin_id: str
    base_url: str = "https://api.jsonbin.io/v3"

    def _bin_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/b/{self.bin_id}"

    def read_wishes(self) -> list:
        try:
            response = requests.get(
                f"{self._bin_url()}/latest",
                headers={"X-Master-Key": self.api_key},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise DocumentStoreError(f"JSONBin request failed: {exc}") from exc
        if not response.ok:
            raise DocumentStoreError(f"JSONBin API error: {response.status_code}")
        record = response.json().get("record")
        return record if isinstance(record, list) else []

    def write_wishes(self, wishes: list) -> None:
        try:
            response = requests.put(
                self._bin_url(),
                headers={
                    "Content-Type": "application/json",
                    "X-Master-Key": self.api_key,
                },
                data=json.dumps(wishes),
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise DocumentStoreError(f"JSONBin request failed: {exc}") from exc
        if not response.ok:
            raise DocumentStoreError(f"JSONBin API error: {response.status_code}")
