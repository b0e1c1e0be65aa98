"""File storage — keeps uploaded profile pictures on local disk."""

from __future__ import annotations

import logging
import secrets
from pathlib import Path, PurePath

from contact_crm.errors import ValidationError

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads"

_ALLOWED_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".webp"}
_SUFFIX_BY_TYPE = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


class LocalFileStorage:
    """Stores images under *root* and hands back ``/uploads/<name>`` references."""

    def __init__(self, root: Path, *, max_bytes: int) -> None:
        self._root = root
        self._max_bytes = max_bytes

    @property
    def root(self) -> Path:
        return self._root

    def ensure_root(self) -> None:
        self._root.mkdir(parents=True, exist_ok=True)

    def save_image(
        self, data: bytes, *, content_type: str | None, filename: str | None, prefix: str
    ) -> str:
        """Persist *data* and return the retrievable reference path."""
        if not content_type or not content_type.startswith("image/"):
            raise ValidationError("Only image uploads are allowed", fields={"profilePicture": "not an image"})
        if not data:
            raise ValidationError("Uploaded file is empty", fields={"profilePicture": "empty file"})
        if len(data) > self._max_bytes:
            raise ValidationError(
                "Uploaded file is too large",
                fields={"profilePicture": f"larger than {self._max_bytes} bytes"},
            )

        suffix = PurePath(filename or "").suffix.lower()
        if suffix not in _ALLOWED_SUFFIXES:
            suffix = _SUFFIX_BY_TYPE.get(content_type, ".img")

        name = f"{prefix}-{secrets.token_hex(8)}{suffix}"
        self.ensure_root()
        (self._root / name).write_bytes(data)
        logger.info("Stored upload %s (%d bytes)", name, len(data))
        return f"{URL_PREFIX}/{name}"
