"""
Wish records and the sanitize step every record passes through.

Anything read from a replica or handed in by a caller is coerced into a
well-formed ``Wish`` here, so the in-memory collection never holds a
malformed record.
"""

from __future__ import annotations

import logging
import math
import re
import time
import uuid
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 100
MAX_AUTHOR_LENGTH = 20
MAX_WISHES = 1000

DEFAULT_POSITION = 50.0
MIN_POSITION = 0.0
MAX_POSITION = 100.0
DEFAULT_COLOR = "#fff"

WISH_COLORS = (
    "#FFB7B2",  # pastel red
    "#FFDAC1",  # pastel orange
    "#E2F0CB",  # pastel green
    "#B5EAD7",  # pastel mint
    "#C7CEEA",  # pastel purple
    "#FFF2CC",  # pastel yellow
)

# Control characters except tab, newline and carriage return.
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")

_SUSPICIOUS_PATTERNS = (
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"<iframe", re.IGNORECASE),
    re.compile(r"<object", re.IGNORECASE),
    re.compile(r"<embed", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
)


class WishValidationError(ValueError):
    """Raised when user input is rejected before it reaches the store."""


@dataclass
class Wish:
    id: str
    created_at: int
    message: str = ""
    author: str = ""
    color: str = DEFAULT_COLOR
    x: float = DEFAULT_POSITION
    y: float = DEFAULT_POSITION
    password: str = ""

    @property
    def is_protected(self) -> bool:
        return bool(self.password)

    def to_dict(self) -> dict:
        """Wire form used by both replicas."""
        payload = asdict(self)
        payload["createdAt"] = payload.pop("created_at")
        return payload


def now_ms() -> int:
    return int(time.time() * 1000)


def new_wish_id() -> str:
    return str(uuid.uuid4())


def sanitize_text(value: Any, max_length: int) -> str:
    if value is None or value == "":
        return ""
    text = _CONTROL_CHARS.sub("", str(value)).strip()
    return text[:max_length].strip()


def _coerce_string(value: Any, default: str = "") -> str:
    if value is None or value is False or value == "":
        return default
    return str(value)


def _coerce_position(value: Any) -> float:
    try:
        number = float(value)
    except OverflowError:
        # Integers beyond float range; only the sign matters once clamped.
        return MAX_POSITION if value > 0 else MIN_POSITION
    except (TypeError, ValueError):
        return DEFAULT_POSITION
    if math.isnan(number):
        return DEFAULT_POSITION
    return min(max(number, MIN_POSITION), MAX_POSITION)


def _coerce_timestamp(value: Any) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return now_ms()
    if not math.isfinite(number) or number <= 0:
        return now_ms()
    return int(number)


def _as_mapping(record: Any) -> Mapping:
    if isinstance(record, Wish):
        return record.to_dict()
    if isinstance(record, Mapping):
        return record
    if hasattr(record, "model_dump"):
        return record.model_dump(by_alias=True)
    return {}


def sanitize_wish(record: Any) -> Wish:
    """
    Coerce an arbitrary input into a well-formed Wish.

    Missing ids are generated, a missing or invalid ``createdAt`` becomes the
    current time, positions default to the centre and are clamped, and text
    fields are trimmed to their bounds. The result is a fixed point:
    ``sanitize_wish(sanitize_wish(r)) == sanitize_wish(r)``.
    """
    data = _as_mapping(record)
    created_at = data.get("createdAt", data.get("created_at"))
    return Wish(
        id=_coerce_string(data.get("id")) or new_wish_id(),
        created_at=_coerce_timestamp(created_at),
        message=sanitize_text(data.get("message"), MAX_MESSAGE_LENGTH),
        author=sanitize_text(data.get("author"), MAX_AUTHOR_LENGTH),
        color=_coerce_string(data.get("color"), DEFAULT_COLOR),
        x=_coerce_position(data.get("x", DEFAULT_POSITION)),
        y=_coerce_position(data.get("y", DEFAULT_POSITION)),
        password=_coerce_string(data.get("password")),
    )


def sanitize_wishes(payload: Any) -> list[Wish]:
    """Sanitize a whole replica payload; non-list payloads count as empty."""
    if not isinstance(payload, list):
        if payload is not None:
            logger.warning(
                "Ignoring wishes payload of type %s (expected a list)",
                type(payload).__name__,
            )
        return []

    wishes: list[Wish] = []
    seen: set[str] = set()
    for record in payload:
        wish = sanitize_wish(record)
        if wish.id in seen:
            logger.warning("Dropping duplicate wish id %s", wish.id)
            continue
        seen.add(wish.id)
        wishes.append(wish)
    return wishes


def validate_text_input(value: Any, field_name: str = "Input") -> str:
    """
    Reject blank input and markup that looks like script injection.

    Returns the value unchanged so callers can chain it into a constructor.
    """
    if not isinstance(value, str) or not value.strip():
        raise WishValidationError(f"{field_name} is required")
    for pattern in _SUSPICIOUS_PATTERNS:
        if pattern.search(value):
            raise WishValidationError(f"{field_name} contains invalid characters")
    return value


def validate_length(value: str, max_length: int, field_name: str) -> str:
    if len(value.strip()) > max_length:
        raise WishValidationError(
            f"{field_name} must be at most {max_length} characters"
        )
    return value
