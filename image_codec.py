"""
image_codec.py — image intake: bytes ⇄ `data:<mime>;base64,<payload>` strings.

The encoded form is self-describing (it carries the MIME type), so a decoded
image can be uploaded with the right Content-Type without any side channel.

    decode(encode(b, m)) == (b, m)   for every non-empty b and valid m
"""
from __future__ import annotations

import base64
import binascii
import re

from errors import InputError, MalformedEncodingError

DEFAULT_MIME_TYPE = "image/jpeg"

_MIME_RE     = re.compile(r"^[\w.+-]+/[\w.+-]+$")
_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<payload>.*)$", re.DOTALL)

# File extension used when the image is stored
_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg":  "jpg",
    "image/png":  "png",
    "image/gif":  "gif",
    "image/webp": "webp",
    "image/heic": "heic",
}


def sniff_mime_type(data: bytes) -> str:
    """Detect the image type from its magic bytes (default jpeg)."""
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if data[:4] == b"GIF8":
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return DEFAULT_MIME_TYPE


def extension_for(mime_type: str) -> str:
    return _EXTENSIONS.get(mime_type.lower(), mime_type.split("/")[-1] or "bin")


def encode(data: bytes, mime_type: str) -> str:
    if not data:
        raise InputError("Image payload is empty.")
    if not _MIME_RE.match(mime_type or ""):
        raise InputError(f"Invalid MIME type: {mime_type!r}")
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode(encoded: str) -> tuple[bytes, str]:
    """
    Split a data URI back into (bytes, mime_type).
    Raises MalformedEncodingError for a missing/invalid prefix or bad base64.
    """
    m = _DATA_URI_RE.match(encoded or "")
    if not m:
        raise MalformedEncodingError("Encoded image lacks a valid 'data:<mime>;base64,' prefix.")
    try:
        data = base64.b64decode(m.group("payload"), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedEncodingError(f"Encoded image payload is not valid base64: {exc}") from exc
    return data, m.group("mime")


def coerce_data_uri(image: str) -> str:
    """
    Accept either a full data URI or a bare base64 string from the client.
    Bare base64 is assumed to be JPEG (what phone cameras produce).
    """
    image = (image or "").strip()
    if not image:
        raise InputError("No image provided")
    if image.startswith("data:"):
        return image
    return f"data:{DEFAULT_MIME_TYPE};base64,{image}"
