"""
Upload Routes

POST /upload - Upload one file (resume, profile image, attachment)
GET /files/{filename} - Download a stored file by its generated name
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File, Form
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from referralme.core.auth import get_current_user
from referralme.core.config import get_settings
from referralme.services.file_storage import (
    StorageUnavailableError, file_url, get_file_storage, is_generated_name, to_data_url
)
from referralme.utils.file_upload import (
    DEFAULT_ALLOWED_TYPES, INLINE_MIME_TYPES, get_file_extension, log_progress, parse_allow_list,
    read_upload, safe_original_name, validate_upload
)
from referralme.schemas.schemas import UploadResponse

router = APIRouter(tags=["Files"])
settings = get_settings()
logger = logging.getLogger(__name__)


@router.post("/upload", response_model=UploadResponse, status_code=201)
async def upload_file(
    file: UploadFile = File(...),
    accept: Optional[str] = Form(None, description="Comma separated extensions/MIME types, e.g. .pdf,.docx"),
    user: dict = Depends(get_current_user)
):
    """
    Upload a file and get back where it lives.

    - 413 when larger than UPLOAD_MAX_SIZE_MB (checked while reading, before type)
    - 400 when neither extension nor MIME type is allowed
    - the file is stored under an allowed extension and content_type is the
      MIME type it will be served with
    - storage="stored": url is /api/files/<generated name>
    - storage="inline": the backend was unreachable and url is a data: URL
    """
    allowed = parse_allow_list(accept)
    original_name = safe_original_name(file.filename)
    max_bytes = settings.upload_max_size_bytes

    content = await read_upload(file, max_bytes, log_progress(original_name))
    extension, content_type = validate_upload(original_name, file.content_type, len(content), allowed, max_bytes)

    storage = get_file_storage()
    try:
        filename = await run_in_threadpool(
            storage.save, content, extension, original_name, content_type, owner_id=user["id"]
        )
    except StorageUnavailableError as e:
        logger.warning("Storage backend %s unavailable for %s: %s", storage.name, original_name, e)
        if not settings.upload_inline_fallback:
            raise HTTPException(status_code=503, detail="File storage is unavailable")
        if len(content) > settings.upload_inline_max_kb * 1024:
            raise HTTPException(
                status_code=503,
                detail=f"File storage is unavailable and the file exceeds the {settings.upload_inline_max_kb}KB inline limit"
            )
        return UploadResponse(
            storage="inline",
            url=to_data_url(content, content_type),
            filename=None,
            original_name=original_name,
            content_type=content_type,
            size=len(content)
        )

    return UploadResponse(
        storage="stored",
        url=file_url(filename),
        filename=filename,
        original_name=original_name,
        content_type=content_type,
        size=len(content)
    )


@router.get("/files/{filename}")
async def get_file(filename: str):
    """Serve a stored file. Only generated names are looked up."""
    if not is_generated_name(filename):
        raise HTTPException(status_code=400, detail="Invalid file name")

    try:
        content = await run_in_threadpool(get_file_storage().load, filename)
    except StorageUnavailableError as e:
        logger.warning("Could not read %s: %s", filename, e)
        raise HTTPException(status_code=503, detail="File storage is unavailable")

    if content is None:
        raise HTTPException(status_code=404, detail="File not found")

    media_type = DEFAULT_ALLOWED_TYPES.get(get_file_extension(filename), "application/octet-stream")
    headers = {"X-Content-Type-Options": "nosniff"}
    if media_type not in INLINE_MIME_TYPES:
        headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return Response(content=content, media_type=media_type, headers=headers)
