from __future__ import annotations
import io
from PIL import Image, UnidentifiedImageError

PHOTO_MIME = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp"}

def sniff_mime(data: bytes) -> str | None:
    try:
        with Image.open(io.BytesIO(data)) as img:
            return PHOTO_MIME.get(img.format or "")
    except (UnidentifiedImageError, OSError):
        return None

def content_type_for(kind: str, data: bytes, declared: str | None = None) -> str:
    """Best guess at the media type of a submission; photos are sniffed, videos trust the platform."""
    if kind == "photo":
        return sniff_mime(data) or "image/jpeg"
    return declared or "video/mp4"
