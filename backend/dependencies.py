"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from fastapi import Depends, Header

from backend.auth import AuthService, PasswordHasher, TokenClaims, TokenService
from backend.config import get_settings
from backend.db import DbClient, InMemoryDbClient, SqlDbClient
from backend.entries import EntryService
from backend.images import ImageService

logger = logging.getLogger(__name__)

_db_client: DbClient | None = None
_token_service: TokenService | None = None
_password_hasher: PasswordHasher | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        logger.info("Using in-memory database")
        _db_client = InMemoryDbClient()
    else:
        _db_client = SqlDbClient(settings.database_url)
    return _db_client


def get_token_service() -> TokenService:
    global _token_service
    if _token_service:
        return _token_service

    settings = get_settings()
    _token_service = TokenService(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        ttl=timedelta(days=settings.token_ttl_days),
    )
    return _token_service


def get_password_hasher() -> PasswordHasher:
    global _password_hasher
    if _password_hasher:
        return _password_hasher

    _password_hasher = PasswordHasher(rounds=get_settings().bcrypt_rounds)
    return _password_hasher


def get_auth_service(
    db: DbClient = Depends(get_db_client),
    tokens: TokenService = Depends(get_token_service),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> AuthService:
    return AuthService(db, tokens, hasher)


def get_entry_service(db: DbClient = Depends(get_db_client)) -> EntryService:
    settings = get_settings()
    return EntryService(
        db,
        default_limit=settings.default_page_size,
        max_limit=settings.max_page_size,
    )


def get_image_service(db: DbClient = Depends(get_db_client)) -> ImageService:
    return ImageService(db, api_prefix=get_settings().api_prefix)


def get_current_user(
    authorization: Optional[str] = Header(None),
    tokens: TokenService = Depends(get_token_service),
) -> TokenClaims:
    """Resolve the bearer token on the request into the caller's identity."""
    return tokens.verify(authorization)
