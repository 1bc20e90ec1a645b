from __future__ import annotations

import base64
import binascii
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from storyboard_studio.errors import InvalidImageData
from storyboard_studio.providers.base import ImagePart


def to_data_url(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_url(src: str) -> tuple[str, bytes]:
    """Split ``data:<mime>;base64,<payload>`` into its MIME type and raw bytes."""
    header, sep, payload = (src or "").partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise InvalidImageData("image reference is not a base64 data URL")
    mime_type = header[len("data:") : -len(";base64")]
    if not mime_type:
        raise InvalidImageData("data URL has no MIME type")
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidImageData(f"data URL payload is not valid base64: {exc}") from exc
    return mime_type, data


def sniff_mime_type(content: bytes) -> str:
    """Identify uploaded bytes as an image and return its MIME type."""
    try:
        with Image.open(BytesIO(content)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise InvalidImageData("uploaded file is not a readable image") from exc
    mime_type = Image.MIME.get(fmt or "")
    if not mime_type:
        raise InvalidImageData(f"unsupported image format: {fmt}")
    return mime_type


def upload_to_data_url(content: bytes) -> str:
    return to_data_url(content, sniff_mime_type(content))


def image_to_part(src: str) -> ImagePart:
    mime_type, data = parse_data_url(src)
    return ImagePart(data=data, mime_type=mime_type)
