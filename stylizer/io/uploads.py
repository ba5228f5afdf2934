"""Validation and persistence of uploaded images."""

import asyncio
import os
from typing import Iterable, Optional

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from stylizer.errors import UploadValidationError

CHUNK_BYTES = 1024 * 1024
ACCEPTED_FORMATS = {"JPEG", "PNG"}
INVALID_FILE_MESSAGE = "Invalid file. Please upload a JPG or PNG image under {limit}."


def _format_limit(max_bytes: int) -> str:
    return f"{max_bytes // (1024 * 1024)}MB" if max_bytes >= 1024 * 1024 else f"{max_bytes} bytes"


def check_content_type(content_type: Optional[str], allowed: Iterable[str], max_bytes: int) -> None:
    if not content_type or content_type.lower() not in {t.lower() for t in allowed}:
        raise UploadValidationError(INVALID_FILE_MESSAGE.format(limit=_format_limit(max_bytes)))


def verify_image_format(path: str) -> str:
    """Confirm the file decodes as JPEG or PNG. Returns the detected format."""
    try:
        with Image.open(path) as img:
            img.verify()
            detected = img.format
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise UploadValidationError(f"Uploaded file is not a readable image: {exc}")
    if detected not in ACCEPTED_FORMATS:
        raise UploadValidationError(f"Unsupported image format {detected}; use JPG or PNG.")
    return detected


async def save_upload(
    file: UploadFile,
    destination: str,
    max_bytes: int,
    allowed_types: Iterable[str],
) -> int:
    """Validate an upload and write it to destination in chunks.

    Returns the number of bytes written. Nothing is left on disk when
    validation fails.
    """
    check_content_type(file.content_type, allowed_types, max_bytes)

    total = 0
    try:
        with open(destination, "wb") as dst:
            while True:
                chunk = await file.read(CHUNK_BYTES)
                if not chunk:
                    break
                total += len(chunk)
                if total > max_bytes:
                    raise UploadValidationError(
                        INVALID_FILE_MESSAGE.format(limit=_format_limit(max_bytes))
                    )
                dst.write(chunk)
        if total == 0:
            raise UploadValidationError("Uploaded file is empty")
        await asyncio.to_thread(verify_image_format, destination)
    except BaseException:
        if os.path.exists(destination):
            os.remove(destination)
        raise
    return total
