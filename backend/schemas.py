"""
Pydantic schemas for the backend API.

Request fields are optional at the schema level so missing values surface as
400 responses with a readable message rather than validation noise.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

from backend.db import EntryRecord


class CredentialsRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class AuthResponse(BaseModel):
    token: str
    username: str


class CreateEntryRequest(BaseModel):
    kind: Optional[str] = None
    title: Optional[str] = None
    body: Optional[str] = None


class EditEntryRequest(BaseModel):
    title: Optional[str] = None
    body: Optional[str] = None


class EntryResponse(BaseModel):
    id: str
    kind: str
    title: Optional[str] = None
    body: str
    ownerId: str
    ownerName: str
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_record(cls, record: EntryRecord) -> "EntryResponse":
        return cls(
            id=record.id,
            kind=record.kind,
            title=record.title,
            body=record.body,
            ownerId=record.owner_id,
            ownerName=record.owner_name,
            createdAt=record.created_at,
            updatedAt=record.updated_at,
        )


class DeleteResponse(BaseModel):
    ok: Literal[True] = True


class ImageUploadRequest(BaseModel):
    mime: Optional[str] = None
    data: Optional[str] = None


class ImageUploadResponse(BaseModel):
    id: str
    url: str
