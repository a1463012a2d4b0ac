"""
Pydantic schemas for the wishes proxy API.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from wishtree.wishes import MAX_AUTHOR_LENGTH, MAX_MESSAGE_LENGTH


class WishRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    createdAt: int = Field(..., gt=0)
    message: str = Field(..., max_length=MAX_MESSAGE_LENGTH)
    author: str = Field(..., max_length=MAX_AUTHOR_LENGTH)
    color: str
    x: float = Field(..., ge=0, le=100)
    y: float = Field(..., ge=0, le=100)
    password: str = ""


class SaveWishesRequest(BaseModel):
    wishes: list[WishRecord]


class WishesResponse(BaseModel):
    wishes: list[Any]


class SaveWishesResponse(BaseModel):
    success: Literal[True]


class HealthResponse(BaseModel):
    status: Literal["ok"]
    timestamp: str
