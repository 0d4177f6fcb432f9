# app/services/file_service.py
import logging
import os
import uuid
from typing import Optional, Tuple

from fastapi import HTTPException, UploadFile, status

from app.config import MAX_UPLOAD_SIZE, UPLOAD_DIR

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def save_upload(upload: UploadFile) -> Tuple[str, str, int]:
    """
    Store an uploaded file under UPLOAD_DIR with a unique name.

    Returns (stored filename, original filename, size in bytes). Oversized
    uploads are removed and rejected with 400.
    """
    os.makedirs(UPLOAD_DIR, exist_ok=True)
    original_name = os.path.basename(upload.filename or "file")
    _, ext = os.path.splitext(original_name)
    stored_name = f"{uuid.uuid4().hex}{ext.lower()}"
    path = os.path.join(UPLOAD_DIR, stored_name)

    size = 0
    with open(path, "wb") as out:
        while True:
            chunk = upload.file.read(CHUNK_SIZE)
            if not chunk:
                break
            size += len(chunk)
            if size > MAX_UPLOAD_SIZE:
                out.close()
                remove_upload(stored_name)
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"File too large. Maximum size is {MAX_UPLOAD_SIZE // (1024 * 1024)}MB",
                )
            out.write(chunk)
    return stored_name, original_name, size


def resolve_upload(filename: str) -> str:
    """Absolute path of a stored file; 400 on traversal attempts, 404 when missing."""
    if not filename or os.path.basename(filename) != filename or filename in (".", ".."):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid filename")
    base = os.path.abspath(UPLOAD_DIR)
    path = os.path.abspath(os.path.join(base, filename))
    if os.path.dirname(path) != base:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid filename")
    if not os.path.isfile(path):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return path


def remove_upload(filename: Optional[str]) -> None:
    if not filename:
        return
    path = os.path.join(UPLOAD_DIR, os.path.basename(filename))
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError as e:
        logger.error(f"Failed to remove upload {filename}: {e}", exc_info=True)
