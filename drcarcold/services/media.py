"""
Upload handling: validation, safe names and storage under DRCARCOLD_UPLOAD_ROOT.

Files are stored as <upload root>/<type>/<safe name> and served back by the
`/api/files/<path>` view.
"""

import logging
import mimetypes
import os
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from django.conf import settings
from django.utils import timezone

from drcarcold.models import MediaType

logger = logging.getLogger(__name__)

MB = 1024 * 1024

SIZE_LIMITS = {
    MediaType.IMAGE: 5 * MB,
    MediaType.GIF: 10 * MB,
    MediaType.VIDEO: 50 * MB,
}

ALLOWED_CONTENT_TYPES = {
    MediaType.IMAGE: {"image/jpeg", "image/jpg", "image/png", "image/webp", "image/svg+xml"},
    MediaType.GIF: {"image/gif"},
    MediaType.VIDEO: {"video/mp4", "video/webm", "video/ogg"},
}

EXTENSIONS = {
    MediaType.IMAGE: {".jpg", ".jpeg", ".png", ".webp", ".svg"},
    MediaType.GIF: {".gif"},
    MediaType.VIDEO: {".mp4", ".webm", ".ogg"},
}

UPLOAD_TYPES = ("products", "categories", "news", "banners")

CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".ogg": "video/ogg",
}

TYPE_ALIASES = {"image/jpg": "image/jpeg"}

TYPE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
    "video/mp4": ".mp4",
    "video/webm": ".webm",
    "video/ogg": ".ogg",
}

DEFAULT_EXTENSIONS = {
    MediaType.IMAGE: ".jpg",
    MediaType.GIF: ".gif",
    MediaType.VIDEO: ".mp4",
}


class MediaValidationError(Exception):
    """An uploaded file was rejected."""


@dataclass
class StoredMedia:
    name: str
    original_name: str
    url: str
    media_type: str
    size: int
    content_type: str

    def to_dict(self):
        return {
            "name": self.name,
            "original_name": self.original_name,
            "url": self.url,
            "media_type": self.media_type,
            "size": self.size,
            "content_type": self.content_type,
        }


def get_upload_root() -> Path:
    return Path(getattr(settings, "DRCARCOLD_UPLOAD_ROOT", "uploads"))


def detect_media_type(filename: str, content_type: Optional[str] = None) -> Optional[str]:
    """Media type from the MIME type, falling back to the file extension."""
    content_type = (content_type or "").lower()
    for media_type, types in ALLOWED_CONTENT_TYPES.items():
        if content_type in types:
            return media_type
    extension = os.path.splitext(filename or "")[1].lower()
    for media_type, extensions in EXTENSIONS.items():
        if extension in extensions:
            return media_type
    return None


def validate_upload(
    uploaded_file,
    accept_video: bool = True,
    accept_gif: bool = True,
) -> str:
    """
    Check type and size of a Django UploadedFile.

    Returns the media type. Raises MediaValidationError.
    """
    media_type = detect_media_type(uploaded_file.name, getattr(uploaded_file, "content_type", None))
    if media_type is None:
        raise MediaValidationError(
            f"Unsupported file format: {uploaded_file.name} "
            "(images JPG/PNG/WebP, GIF, videos MP4/WebM/OGG)"
        )
    if media_type == MediaType.VIDEO and not accept_video:
        raise MediaValidationError(f"Videos are not accepted here: {uploaded_file.name}")
    if media_type == MediaType.GIF and not accept_gif:
        raise MediaValidationError(f"GIFs are not accepted here: {uploaded_file.name}")

    limit = SIZE_LIMITS[media_type]
    if uploaded_file.size > limit:
        raise MediaValidationError(
            f"{uploaded_file.name} is {uploaded_file.size / MB:.2f}MB, "
            f"limit is {limit // MB}MB"
        )
    return media_type


def extension_for(filename: str, media_type: str, content_type: Optional[str] = None) -> str:
    """
    File extension matching the validated media type.

    The client's extension is kept only when it agrees with the MIME type
    the upload was accepted under; otherwise one is derived from that type.
    """
    extension = os.path.splitext(filename or "")[1].lower()
    content_type = (content_type or "").lower()
    allowed = ALLOWED_CONTENT_TYPES.get(media_type, set())
    if content_type in allowed:
        if CONTENT_TYPES.get(extension) == TYPE_ALIASES.get(content_type, content_type):
            return extension
        return TYPE_EXTENSIONS[TYPE_ALIASES.get(content_type, content_type)]
    if extension in EXTENSIONS.get(media_type, set()):
        return extension
    return DEFAULT_EXTENSIONS[media_type]


def safe_filename(original_name: str, extension: Optional[str] = None) -> str:
    """
    <timestamp>_<random>_<cleaned stem><ext>

    `extension` replaces the one from `original_name` when given.

    >>> safe_filename("my photo.JPG")[-13:]
    '_my_photo.jpg'
    """
    stem, original_extension = os.path.splitext(os.path.basename(original_name or "file"))
    if extension is None:
        extension = original_extension
    clean_stem = re.sub(r"[^a-zA-Z0-9一-鿿_-]", "_", stem)[:30] or "file"
    timestamp = int(timezone.now().timestamp() * 1000)
    return f"{timestamp}_{uuid.uuid4().hex[:6]}_{clean_stem}{extension.lower()}"


def save_upload(uploaded_file, upload_type: str, media_type: str) -> StoredMedia:
    if upload_type not in UPLOAD_TYPES:
        raise MediaValidationError(f"Unknown upload type: {upload_type}")

    directory = get_upload_root() / upload_type
    directory.mkdir(parents=True, exist_ok=True)
    content_type = getattr(uploaded_file, "content_type", None)
    name = safe_filename(uploaded_file.name, extension_for(uploaded_file.name, media_type, content_type))
    destination = directory / name

    with open(destination, "wb") as fh:
        for chunk in uploaded_file.chunks():
            fh.write(chunk)

    logger.info(f"Saved upload {uploaded_file.name} -> {destination}")
    return StoredMedia(
        name=name,
        original_name=uploaded_file.name,
        url=f"/api/files/{upload_type}/{name}",
        media_type=media_type,
        size=uploaded_file.size,
        content_type=content_type_for(name),
    )


def content_type_for(path: str) -> str:
    extension = os.path.splitext(path)[1].lower()
    return CONTENT_TYPES.get(extension) or mimetypes.guess_type(path)[0] or "application/octet-stream"


def resolve_upload_path(relative_path: str) -> Path:
    """
    Map a request path to a file under the upload root.

    Raises MediaValidationError for traversal attempts.
    """
    if ".." in relative_path or "~" in relative_path or relative_path.startswith("/"):
        raise MediaValidationError("Invalid file path")
    root = get_upload_root().resolve()
    path = (root / relative_path).resolve()
    if root != path and root not in path.parents:
        raise MediaValidationError("Invalid file path")
    return path
