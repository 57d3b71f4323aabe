"""
HTTP routes for the entries API.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from backend.auth import AuthService, TokenClaims
from backend.dependencies import (
    get_auth_service,
    get_current_user,
    get_entry_service,
    get_image_service,
)
from backend.entries import EntryService
from backend.images import ImageService
from backend.schemas import (
    AuthResponse,
    CreateEntryRequest,
    CredentialsRequest,
    DeleteResponse,
    EditEntryRequest,
    EntryResponse,
    ImageUploadRequest,
    ImageUploadResponse,
)

router = APIRouter()


@router.post("/auth/register", response_model=AuthResponse, status_code=201)
def register(
    payload: CredentialsRequest, auth: AuthService = Depends(get_auth_service)
):
    result = auth.register(payload.username, payload.password)
    return AuthResponse(token=result.token, username=result.username)


@router.post("/auth/login", response_model=AuthResponse)
def login(payload: CredentialsRequest, auth: AuthService = Depends(get_auth_service)):
    result = auth.login(payload.username, payload.password)
    return AuthResponse(token=result.token, username=result.username)


@router.get("/entries", response_model=list[EntryResponse])
def list_entries(
    kind: Optional[str] = Query(None),
    page: int = Query(0),
    limit: Optional[int] = Query(None),
    q: Optional[str] = Query(None),
    entries: EntryService = Depends(get_entry_service),
):
    """
    Newest first, optionally filtered by kind and a literal search string.
    """
    records = entries.list(kind=kind, page=page, limit=limit, q=q)
    return [EntryResponse.from_record(record) for record in records]


@router.post("/entries", response_model=EntryResponse, status_code=201)
def create_entry(
    payload: CreateEntryRequest,
    caller: TokenClaims = Depends(get_current_user),
    entries: EntryService = Depends(get_entry_service),
):
    record = entries.create(payload.kind, payload.title, payload.body, caller)
    return EntryResponse.from_record(record)


@router.put("/entries/{entry_id}", response_model=EntryResponse)
def edit_entry(
    entry_id: str,
    payload: EditEntryRequest,
    caller: TokenClaims = Depends(get_current_user),
    entries: EntryService = Depends(get_entry_service),
):
    record = entries.edit(entry_id, payload.title, payload.body, caller)
    return EntryResponse.from_record(record)


@router.delete("/entries/{entry_id}", response_model=DeleteResponse)
def delete_entry(
    entry_id: str,
    caller: TokenClaims = Depends(get_current_user),
    entries: EntryService = Depends(get_entry_service),
):
    entries.remove(entry_id, caller)
    return DeleteResponse()


@router.post("/images-json", response_model=ImageUploadResponse, status_code=201)
def upload_image(
    payload: ImageUploadRequest,
    caller: TokenClaims = Depends(get_current_user),
    images: ImageService = Depends(get_image_service),
):
    image, url = images.upload(payload.mime, payload.data, caller)
    return ImageUploadResponse(id=image.id, url=url)


@router.get("/images/{image_id}")
def fetch_image(image_id: str, images: ImageService = Depends(get_image_service)):
    content, mime = images.fetch(image_id)
    return Response(content=content, media_type=mime)
