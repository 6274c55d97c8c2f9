"""Utilities for turning uploaded files into inline attachments."""

from __future__ import annotations

import base64
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from fastapi import HTTPException, UploadFile, status

from fairway.config import get_settings

settings = get_settings()

_CHUNK_SIZE: Final[int] = 1024 * 1024  # 1 MiB
_DEFAULT_MIME: Final[str] = "application/octet-stream"


@dataclass(slots=True)
class StoredFile:
    """An upload encoded as a ``data:`` URL."""

    file_name: str
    mime_type: str
    file_size: int
    data_url: str


def _guess_mime_type(upload: UploadFile, file_name: str) -> str:
    if upload.content_type:
        return upload.content_type
    guessed, _ = mimetypes.guess_type(file_name)
    return guessed or _DEFAULT_MIME


def build_data_url(payload: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(payload).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


async def read_upload(upload: UploadFile) -> StoredFile:
    """Read an uploaded file, enforcing the size limit, and encode it inline."""

    file_name = Path(upload.filename or "upload.bin").name or "upload.bin"
    mime_type = _guess_mime_type(upload, file_name)

    chunks: list[bytes] = []
    total_size = 0
    try:
        while True:
            chunk = await upload.read(_CHUNK_SIZE)
            if not chunk:
                break
            total_size += len(chunk)
            if total_size > settings.max_upload_size:
                raise HTTPException(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    detail="File too large",
                )
            chunks.append(chunk)
    finally:
        await upload.close()

    if total_size == 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File is empty")

    return StoredFile(
        file_name=file_name,
        mime_type=mime_type,
        file_size=total_size,
        data_url=build_data_url(b"".join(chunks), mime_type),
    )
