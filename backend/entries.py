"""
Entry CRUD and listing, with ownership enforced on every mutation.
"""

from __future__ import annotations

import logging
from typing import Optional

from backend.auth import TokenClaims
from backend.db import DbClient, EntryRecord
from backend.errors import BadRequest, Forbidden, NotFound, Unauthorized
from backend.sanitize import sanitize_body
from shared.types import EntryKind

logger = logging.getLogger(__name__)


def is_owner(entry: EntryRecord, caller_id: str) -> bool:
    return entry.owner_id == caller_id


class EntryService:
    def __init__(self, db: DbClient, *, default_limit: int = 10, max_limit: int = 100):
        self.db = db
        self.default_limit = default_limit
        self.max_limit = max_limit

    def list(
        self,
        kind: Optional[str] = None,
        page: int = 0,
        limit: Optional[int] = None,
        q: Optional[str] = None,
    ) -> list[EntryRecord]:
        limit = self.default_limit if limit is None else limit
        limit = min(max(1, limit), self.max_limit)
        offset = max(0, page) * limit
        return self.db.list_entries(kind=kind or None, query=q or None, offset=offset, limit=limit)

    def create(
        self,
        kind: Optional[str],
        title: Optional[str],
        body: Optional[str],
        caller: TokenClaims,
    ) -> EntryRecord:
        if not kind or not body:
            raise BadRequest("kind and body required")
        entry_kind = EntryKind.parse(kind)
        if entry_kind is None:
            raise BadRequest(f"unknown kind: {kind}")
        clean = self._clean(body)
        owner = self.db.get_user(caller.user_id)
        if owner is None:
            raise Unauthorized("unknown user")
        entry = self.db.create_entry(
            kind=entry_kind.value,
            title=title,
            body=clean,
            owner_id=owner.id,
            owner_name=owner.username,
        )
        logger.info("Created %s entry %s for %s", entry.kind, entry.id, owner.username)
        return entry

    def edit(
        self,
        entry_id: str,
        title: Optional[str],
        body: Optional[str],
        caller: TokenClaims,
    ) -> EntryRecord:
        entry = self._owned_entry(entry_id, caller)
        if body:
            entry.body = self._clean(body)
        if title is not None:
            entry.title = title
        saved = self.db.save_entry(entry)
        logger.info("Edited entry %s", saved.id)
        return saved

    def remove(self, entry_id: str, caller: TokenClaims) -> None:
        entry = self._owned_entry(entry_id, caller)
        if not self.db.delete_entry(entry.id):
            raise NotFound("not found")
        logger.info("Deleted entry %s", entry.id)

    def _owned_entry(self, entry_id: str, caller: TokenClaims) -> EntryRecord:
        entry = self.db.get_entry(entry_id)
        if entry is None:
            raise NotFound("not found")
        if not is_owner(entry, caller.user_id):
            raise Forbidden("not owner")
        return entry

    @staticmethod
    def _clean(body: str) -> str:
        clean = sanitize_body(body)
        if not clean:
            raise BadRequest("body is empty after sanitization")
        return clean
