from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import Optional, Protocol, Union

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from .errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}
UPLOAD_PREFIX = "uploads/"


class ImageStore(Protocol):
    """Turns an uploaded photo into an opaque image reference."""

    def save(self, image: Optional[FileStorage]) -> Optional[str]:
        """Store ``image`` and return its reference, or ``None`` when nothing was picked."""


def allowed_image(filename: Optional[str]) -> bool:
    if not filename or "." not in filename:
        return False
    ext = filename.rsplit(".", 1)[1].lower()
    return ext in ALLOWED_IMAGE_EXTENSIONS


def check_image(image: Optional[FileStorage]) -> bool:
    """Return ``True`` when ``image`` holds an upload worth storing."""

    if image is None or not image.filename:
        return False
    if not allowed_image(image.filename):
        raise ValidationError(
            ("image",),
            "Unsupported image format. Allowed formats: PNG, JPG, JPEG, GIF, WEBP.",
        )
    return True


def build_image_name(filename: str) -> str:
    safe = secure_filename(filename)
    unique = uuid.uuid4().hex
    return f"{unique}_{safe}"


class LocalImageStore:
    """Keeps uploaded photos in a local directory.

    References look like ``uploads/<name>`` and are served by the web app.
    """

    def __init__(self, directory: Union[str, os.PathLike]) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def save(self, image: Optional[FileStorage]) -> Optional[str]:
        if not check_image(image):
            return None

        self._directory.mkdir(parents=True, exist_ok=True)
        name = build_image_name(image.filename)
        image.stream.seek(0)
        image.save(self._directory / name)
        logger.info("Stored image %s", name)
        return f"{UPLOAD_PREFIX}{name}"


__all__ = [
    "ALLOWED_IMAGE_EXTENSIONS",
    "ImageStore",
    "LocalImageStore",
    "allowed_image",
    "build_image_name",
    "check_image",
]
