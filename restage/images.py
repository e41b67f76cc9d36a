#!/usr/bin/env python3
"""
RESTAGE Images - Uploaded image values and their conversion to model parts.
"""

import base64
import binascii
import io
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from google.genai import types
from PIL import Image, UnidentifiedImageError

from restage.errors import InputFormatError

DATA_URL_RE = re.compile(r'^data:(.+);base64,(.+)$', re.DOTALL)

# Pillow formats the model accepts, by the MIME type it expects
SUPPORTED_FORMATS = {
    'PNG': 'image/png',
    'JPEG': 'image/jpeg',
    # Multi-picture JPEGs written by phone cameras
    'MPO': 'image/jpeg',
    'WEBP': 'image/webp',
    'HEIF': 'image/heif',
    'HEIC': 'image/heic',
}


def parse_data_url(data_url: str) -> Tuple[str, str]:
    """
    Split a data URL into its MIME type and base64 payload.

    Raises:
        InputFormatError: If the string is not a base64 data URL
    """
    match = DATA_URL_RE.match(data_url or '')
    if not match:
        raise InputFormatError('Invalid base64 string format')
    return match.group(1), match.group(2)


def detect_mime_type(data: bytes) -> str:
    """
    Detect an image's MIME type from its contents.

    Raises:
        InputFormatError: If the data is not an image the model accepts
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            image_format = img.format
    except (UnidentifiedImageError, OSError) as e:
        raise InputFormatError(f"Unrecognized image data: {e}") from e

    mime_type = SUPPORTED_FORMATS.get(image_format)
    if mime_type is None:
        supported = ', '.join(sorted(set(SUPPORTED_FORMATS) - {'MPO'}))
        raise InputFormatError(
            f"Unsupported image format '{image_format}' (expected one of: {supported})"
        )
    return mime_type


@dataclass(frozen=True)
class ImageFile:
    """An uploaded image: raw bytes plus a MIME-tagged base64 data URL."""

    data: bytes
    data_url: str

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: Optional[str] = None) -> 'ImageFile':
        """Wrap raw image bytes, detecting the MIME type when not given."""
        if mime_type is None:
            mime_type = detect_mime_type(data)
        payload = base64.b64encode(data).decode('ascii')
        return cls(data=data, data_url=f"data:{mime_type};base64,{payload}")

    @classmethod
    def from_path(cls, path: Path) -> 'ImageFile':
        """Load an image file from disk."""
        path = Path(path)
        if not path.is_file():
            raise InputFormatError(f"Image not found: {path}")
        return cls.from_bytes(path.read_bytes())

    @property
    def mime_type(self) -> str:
        return parse_data_url(self.data_url)[0]

    def to_part(self) -> types.Part:
        """
        Convert the encoded form into an inline-data part for the model.

        Raises:
            InputFormatError: If the data URL or its payload is malformed
        """
        mime_type, payload = parse_data_url(self.data_url)
        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InputFormatError(f"Invalid base64 payload: {e}") from e
        return types.Part.from_bytes(data=raw, mime_type=mime_type)
