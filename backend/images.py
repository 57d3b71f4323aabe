"""
Image uploads (base64 JSON payloads) and raw byte serving.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Optional

from backend.auth import TokenClaims
from backend.db import DbClient, ImageRecord
from backend.errors import BadRequest, NotFound

logger = logging.getLogger(__name__)


def image_url(api_prefix: str, image_id: str) -> str:
    return f"{api_prefix}/images/{image_id}"


class ImageService:
    def __init__(self, db: DbClient, *, api_prefix: str = "/api"):
        self.db = db
        self.api_prefix = api_prefix

    def upload(
        self, mime: Optional[str], data: Optional[str], caller: TokenClaims
    ) -> tuple[ImageRecord, str]:
        if not mime or not data:
            raise BadRequest("mime and data required")
        try:
            base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise BadRequest("data must be base64") from exc
        image = self.db.save_image(mime, data)
        logger.info("Stored %s image %s for %s", mime, image.id, caller.username)
        return image, image_url(self.api_prefix, image.id)

    def fetch(self, image_id: str) -> tuple[bytes, str]:
        image = self.db.get_image(image_id)
        if image is None:
            raise NotFound("not found")
        return base64.b64decode(image.data), image.mime
