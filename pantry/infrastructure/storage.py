"""File storage utilities"""
import base64
import binascii
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import quote, unquote

from fastapi import UploadFile

from pantry.domain.entities.inventory import ImagePayload, StoredImage
from pantry.domain.exceptions import StoreError, ValidationError
from pantry.domain.repositories.blob_store import BlobStore
from pantry.infrastructure.config.settings import Settings

logger = logging.getLogger(__name__)

IMAGE_FOLDER = "images"

CONTENT_TYPE_TO_EXT = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


def get_file_extension(filename: str) -> str:
    """Get file extension from filename"""
    return Path(filename).suffix.lower()


@dataclass(frozen=True)
class ImageLimits:
    """Upload limits applied to every image before it reaches the blob store"""
    allowed_extensions: Tuple[str, ...] = (".jpg", ".jpeg", ".png", ".gif", ".webp")
    max_size: int = 10 * 1024 * 1024  # 10MB

    @classmethod
    def from_settings(cls, settings: Settings) -> "ImageLimits":
        return cls(
            allowed_extensions=tuple(ext.lower() for ext in settings.ALLOWED_IMAGE_EXTENSIONS),
            max_size=settings.MAX_UPLOAD_SIZE,
        )


def is_allowed_image_file(filename: str, limits: ImageLimits) -> bool:
    """Check if file is an allowed image type"""
    ext = get_file_extension(filename)
    return ext in limits.allowed_extensions


def build_image_path(filename: str) -> str:
    """Blob path for a new upload: images/{originalFilename}{randomUUID}"""
    base_name = Path(filename.replace("\\", "/")).name
    return f"{IMAGE_FOLDER}/{base_name}{uuid.uuid4()}"


class LocalBlobStore(BlobStore):
    """Blob store backed by a local directory served under /uploads"""

    def __init__(self, upload_dir: str, base_url: str):
        self.upload_dir = Path(upload_dir)
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"

    def ensure_upload_dir(self) -> Path:
        """Ensure upload directory exists"""
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        return self.upload_dir

    def _full_path(self, path: str) -> Path:
        root = self.ensure_upload_dir().resolve()
        full_path = (root / path).resolve()
        if root not in full_path.parents:
            raise StoreError(f"Blob path escapes the upload directory: {path}")
        return full_path

    async def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        full_path = self._full_path(path)
        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            with open(full_path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise StoreError(f"Failed to store blob '{path}'") from e
        logger.info("Stored blob %s (%d bytes)", path, len(data))
        return self.get_download_url(path)

    async def delete(self, path: str) -> bool:
        full_path = self._full_path(path)
        try:
            if not full_path.exists():
                return False
            full_path.unlink()
        except OSError as e:
            raise StoreError(f"Failed to delete blob '{path}'") from e
        logger.info("Deleted blob %s", path)
        return True

    def get_download_url(self, path: str) -> str:
        return f"{self.base_url}{quote(path)}"

    def path_from_url(self, url: str) -> Optional[str]:
        if not url or not url.startswith(self.base_url):
            return None
        path = unquote(url[len(self.base_url):].split("?", 1)[0])
        return path or None


def validate_image(image: ImagePayload, limits: ImageLimits) -> None:
    """Reject payloads the blob store should never see"""
    if not image.filename:
        raise ValidationError("Filename is required")

    if not is_allowed_image_file(image.filename, limits):
        raise ValidationError(f"File type not allowed. Allowed types: {', '.join(limits.allowed_extensions)}")

    if not image.data:
        raise ValidationError("Image file is empty")

    # Check file size
    if len(image.data) > limits.max_size:
        raise ValidationError(f"File size exceeds maximum allowed size of {limits.max_size / 1024 / 1024}MB")


async def store_image(image: ImagePayload, blob_store: BlobStore, limits: ImageLimits) -> StoredImage:
    """Validate an image and upload it under a fresh path"""
    validate_image(image, limits)
    path = build_image_path(image.filename)
    url = await blob_store.upload(path, image.data, image.content_type)
    return StoredImage(path=path, url=url)


async def read_uploaded_file(file: UploadFile) -> ImagePayload:
    """Read a multipart upload into memory"""
    if not file.filename:
        raise ValidationError("Filename is required")

    contents = await file.read()
    return ImagePayload(data=contents, filename=file.filename, content_type=file.content_type)


def decode_base64_image(payload: str, filename: Optional[str] = None) -> ImagePayload:
    """Decode a base64 image, with or without a data URL prefix (camera captures)"""
    content_type = "image/jpeg"
    if "," in payload:
        prefix, payload = payload.split(",", 1)
        if prefix.startswith("data:") and ";" in prefix:
            content_type = prefix.split(";")[0].replace("data:", "").strip().lower() or content_type

    try:
        data = base64.b64decode(payload.strip(), validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Image payload is not valid base64")

    if not filename:
        ext = CONTENT_TYPE_TO_EXT.get(content_type)
        if ext is None:
            raise ValidationError(f"Unsupported image type: {content_type}")
        filename = f"capture_{uuid.uuid4().hex[:8]}{ext}"

    return ImagePayload(data=data, filename=filename, content_type=content_type)
