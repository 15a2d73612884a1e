"""Service layer – staging uploaded images on disk for the life of one request."""

from __future__ import annotations

import io
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from src.classify_gateway.config import settings
from src.classify_gateway.errors import InvalidImage, MissingFile, UploadTooLarge

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagedUpload:
    """An uploaded image written to the scratch directory."""

    path: Path
    filename: str
    content_type: str


def validate_upload(content: bytes, content_type: str | None) -> str:
    """
    Check an uploaded payload before it is staged.

    Returns the normalised MIME type.  Raises ``MissingFile`` for an empty
    payload, ``UploadTooLarge`` above ``settings.max_upload_size`` and
    ``InvalidImage`` when the declared type is not an accepted image type
    (or, with ``settings.verify_image_content``, when Pillow cannot read it).
    """
    if not content:
        raise MissingFile("Uploaded image file is empty")

    if len(content) > settings.max_upload_size:
        raise UploadTooLarge(
            f"File too large ({len(content)} bytes). "
            f"Maximum size: {settings.max_upload_size} bytes.",
        )

    mime = (content_type or "").split(";")[0].strip().lower()
    allowed = settings.allowed_content_types_set
    if mime not in allowed:
        raise InvalidImage(
            f"File type '{mime or 'unknown'}' not allowed. Allowed: {', '.join(sorted(allowed))}",
        )

    if settings.verify_image_content:
        try:
            with Image.open(io.BytesIO(content)) as image:
                image.verify()
        except Image.DecompressionBombError as exc:
            raise InvalidImage(f"Uploaded image is too large to decode: {exc}") from exc
        except (UnidentifiedImageError, OSError, SyntaxError) as exc:
            raise InvalidImage(f"Uploaded file is not a readable image: {exc}") from exc

    return mime


@contextmanager
def staged_upload(content: bytes, filename: str | None, content_type: str) -> Iterator[StagedUpload]:
    """
    Write *content* to a uniquely named file in ``settings.upload_dir``.

    The file is removed when the block exits, however it exits.  A failed
    removal is logged and swallowed so it never masks the request outcome.
    """
    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)

    original_name = filename or "upload"
    suffix = Path(original_name).suffix.lower()
    if not suffix[1:].isalnum():
        suffix = ""
    path = upload_dir / f"{uuid.uuid4()}{suffix}"

    try:
        with open(path, "wb") as f:
            f.write(content)
        logger.debug("Staged %s as %s", original_name, path.name)
        yield StagedUpload(path=path, filename=original_name, content_type=content_type)
    finally:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Failed to delete staged upload %s: %s", path.name, exc)
