"""
Pydantic schemas for the chronicle API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, StrictInt

DataT = TypeVar("DataT")


class Envelope(BaseModel, Generic[DataT]):
    success: Literal[True] = True
    data: DataT


class HistoryCreateRequest(BaseModel):
    title: Optional[str] = None
    message: Optional[str] = None


class HistoryCreated(BaseModel):
    id: int
    title: str
    message: str


class HistoryItem(BaseModel):
    id: int
    title: str
    message: str
    created_at: Optional[datetime] = None


class ProfileData(BaseModel):
    id: int
    name: str
    profile_picture_url: Optional[str] = None


class ProfileUpdated(BaseModel):
    name: str
    profile_picture_url: Optional[str] = None


class FeedbackCreateRequest(BaseModel):
    comment: Optional[str] = None
    rating: Optional[StrictInt] = None


class FeedbackCreated(BaseModel):
    id: int
    comment: str
    rating: int
