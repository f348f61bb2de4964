"""Validation helpers for uploaded slip images."""

import io
from typing import Optional, Tuple

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from models.errors import UnsupportedInput

# Pillow format name -> MIME type used when the client sends none.
FORMAT_MIME_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
    "BMP": "image/bmp",
    "TIFF": "image/tiff",
}


def validate_image_bytes(raw: bytes, content_type: Optional[str], *, max_bytes: int) -> str:
    """Check that `raw` is a decodable image within the size limit and return its MIME type.

    Raises:
        UnsupportedInput: If the content type is not an image type, the payload is
            empty or too large, or Pillow cannot identify it as an image.
    """
    declared = (content_type or "").lower().split(";", 1)[0].strip()
    if declared and not declared.startswith("image/"):
        raise UnsupportedInput(f"Only image files are accepted, got {content_type}.")
    if not raw:
        raise UnsupportedInput("Uploaded image is empty.")
    if max_bytes and len(raw) > max_bytes:
        raise UnsupportedInput(f"Image is {len(raw)} bytes; the limit is {max_bytes} bytes.")

    try:
        with Image.open(io.BytesIO(raw)) as img:
            image_format = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        raise UnsupportedInput("Uploaded file is not a readable image.") from exc

    return declared or FORMAT_MIME_TYPES.get(image_format or "", "image/jpeg")


async def read_image_upload(upload: UploadFile, *, max_bytes: int) -> Tuple[bytes, str]:
    """Read and validate an uploaded image, returning its bytes and MIME type."""
    raw = await upload.read()
    mime_type = validate_image_bytes(raw, upload.content_type, max_bytes=max_bytes)
    return raw, mime_type
