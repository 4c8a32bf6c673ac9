"""
Verification document storage.

Documents go to UPLOAD_DIR/<user id>/ on local disk, or to Cloudinary when
STORAGE_BACKEND is "cloudinary". Only images and PDFs up to MAX_UPLOAD_SIZE_MB
are accepted.
"""
import logging
import os
import uuid

import aiofiles
import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from ..config import settings
from ..auth.exceptions import InvalidDocumentException
from ..exceptions import DependencyException

# Set up logger for this module
logger = logging.getLogger(__name__)

ALLOWED_DOCUMENT_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "application/pdf": ".pdf",
}

async def read_document(file: UploadFile) -> bytes:
    """
    Read an uploaded verification document after checking type and size.

    Raises:
        InvalidDocumentException: If the type is not an image/PDF, the file is
            empty, or it exceeds the configured maximum
    """
    if file.content_type not in ALLOWED_DOCUMENT_TYPES:
        raise InvalidDocumentException("Invalid file type. Only JPEG, PNG, WEBP images and PDF documents are allowed.")
    max_bytes = settings.max_upload_size_bytes
    # one byte past the limit is enough to know it is too large
    content = await file.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise InvalidDocumentException(f"File too large. Max {settings.max_upload_size_mb}MB allowed.")
    if not content:
        raise InvalidDocumentException("Uploaded file is empty")
    return content


async def store_document(user_id: int, content: bytes, content_type: str) -> str:
    """
    Persist a document and return its stored path (or URL).
    """
    if settings.storage_backend == "cloudinary":
        return await run_in_threadpool(_upload_to_cloudinary, user_id, content, content_type)
    return await _write_local(user_id, content, content_type)


async def _write_local(user_id: int, content: bytes, content_type: str) -> str:
    folder = os.path.join(settings.upload_dir, str(user_id))
    os.makedirs(folder, exist_ok=True)
    file_path = os.path.join(folder, f"{uuid.uuid4().hex}{ALLOWED_DOCUMENT_TYPES[content_type]}")
    try:
        async with aiofiles.open(file_path, "wb") as f:
            await f.write(content)
    except OSError as e:
        logger.error(f"Failed to write verification document for user {user_id}: {str(e)}")
        raise DependencyException("Document storage unavailable")
    logger.info(f"Stored verification document for user {user_id} at {file_path}")
    return file_path


def _upload_to_cloudinary(user_id: int, content: bytes, content_type: str) -> str:
    cloudinary.config(
        cloud_name=settings.cloudinary_cloud_name,
        api_key=settings.cloudinary_api_key,
        api_secret=settings.cloudinary_api_secret,
        secure=True
    )
    try:
        result = cloudinary.uploader.upload(
            content,
            folder=f"verification_documents/{user_id}",
            resource_type="image" if content_type.startswith("image/") else "raw",
            timeout=settings.registry_timeout_seconds
        )
    except cloudinary.exceptions.Error as e:
        logger.error(f"Cloudinary API error during verification document upload: {str(e)}")
        raise DependencyException("Document storage unavailable")
    secure_url = result.get("secure_url")
    if not secure_url:
        logger.error("Cloudinary upload result did not contain a secure_url.")
        raise DependencyException("Document storage unavailable")
    logger.info(f"Uploaded verification document for user {user_id} to Cloudinary")
    return secure_url
