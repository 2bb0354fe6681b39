"""
File Upload Utility - validate, read and extract text from uploaded files.

Allowed by default:
- Documents: .pdf, .doc, .docx, .txt
- Images: .jpg, .jpeg, .png, .gif

Callers may narrow the allow-list per request (e.g. ".pdf,.docx" for resumes).
A file passes when its extension OR its MIME type is in the allow-list, and is
then stored and served under an extension and MIME type from
DEFAULT_ALLOWED_TYPES, never under the client's own unlisted extension.

Size is checked before type. Requests whose Content-Length is already past the
ceiling are refused before the body is parsed; otherwise the multipart parser
spools the body first and the handler rejects it while reading it back in
chunks.
"""

import io
import logging
import os
from typing import Callable, Iterable, Optional, Set, Tuple

from fastapi import HTTPException, UploadFile
from PyPDF2 import PdfReader
from docx import Document

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

DEFAULT_ALLOWED_TYPES = {
    # documents
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
    # images
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
}

RESUME_EXTENSIONS = {".pdf", ".docx", ".txt"}

# Served inline; everything else is sent as an attachment
INLINE_MIME_TYPES = {"application/pdf", "image/jpeg", "image/png", "image/gif"}

# Multipart boundaries and part headers on top of the file itself
MULTIPART_OVERHEAD_BYTES = 64 * 1024

ProgressCallback = Callable[[int, Optional[int]], None]


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


def default_allow_list() -> Set[str]:
    """Every extension and MIME type the server accepts."""
    return set(DEFAULT_ALLOWED_TYPES) | set(DEFAULT_ALLOWED_TYPES.values())


def parse_allow_list(accept: Optional[str]) -> Set[str]:
    """
    Turn a caller-supplied "accept" string (".pdf,.docx,image/png") into an
    allow-list. Entries the server does not accept are dropped; an empty
    result is an error.
    """
    server_allowed = default_allow_list()
    if not accept:
        return server_allowed

    requested = set()
    for item in accept.split(","):
        item = item.strip().lower()
        if not item:
            continue
        if "/" not in item and not item.startswith("."):
            item = "." + item
        requested.add(item)

    allowed = requested & server_allowed
    if not allowed:
        raise HTTPException(
            status_code=400,
            detail=f"None of the requested types are accepted. Allowed: {', '.join(sorted(DEFAULT_ALLOWED_TYPES))}"
        )
    return allowed


def validate_size(size: int, max_bytes: int) -> None:
    if size > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {max_bytes // (1024 * 1024)}MB"
        )


def body_too_large(content_length: Optional[str], max_bytes: int) -> bool:
    """True when a declared request size cannot hold a file under the ceiling."""
    try:
        declared = int(content_length)
    except (TypeError, ValueError):
        return False
    return declared > max_bytes + MULTIPART_OVERHEAD_BYTES


def validate_type(filename: str, content_type: Optional[str], allowed: Iterable[str]) -> Tuple[str, str]:
    """
    Check the file against the allow-list and resolve how it is stored.

    Returns:
        (extension, mime_type), both taken from DEFAULT_ALLOWED_TYPES.
        The client's extension is kept only when it is allowed itself;
        otherwise the extension follows the allowed MIME type.
    """
    allowed = {a.lower() for a in allowed}
    ext = get_file_extension(filename)
    mime = (content_type or "").split(";")[0].strip().lower()

    if ext in allowed and ext in DEFAULT_ALLOWED_TYPES:
        return ext, DEFAULT_ALLOWED_TYPES[ext]
    if mime in allowed:
        for known_ext, known_mime in DEFAULT_ALLOWED_TYPES.items():
            if known_mime == mime:
                return known_ext, known_mime

    shown = sorted(a for a in allowed if a.startswith("."))
    raise HTTPException(
        status_code=400,
        detail=f"Unsupported file type '{ext or mime or 'unknown'}'. Allowed: {', '.join(shown) or ', '.join(sorted(allowed))}"
    )


def validate_upload(
    filename: str,
    content_type: Optional[str],
    size: int,
    allowed: Iterable[str],
    max_bytes: int
) -> Tuple[str, str]:
    """
    Validate one file against the size ceiling and the allow-list.

    Returns:
        (extension, mime_type) to store and serve the file under

    Raises:
        HTTPException 413 when too large (checked first, regardless of type)
        HTTPException 400 when the type is not allowed
    """
    validate_size(size, max_bytes)
    return validate_type(filename, content_type, allowed)


async def read_upload(
    file: UploadFile,
    max_bytes: int,
    on_progress: Optional[ProgressCallback] = None
) -> bytes:
    """
    Read an UploadFile in chunks, reporting progress after every chunk.

    on_progress(received_bytes, expected_total_or_None) is called
    incrementally. Reading stops with 413 once max_bytes is exceeded; by then
    the multipart parser has already spooled the body, so this bounds memory,
    not the bytes received.
    """
    expected = getattr(file, "size", None)
    if expected is not None:
        validate_size(expected, max_bytes)

    buffer = bytearray()
    while True:
        chunk = await file.read(CHUNK_SIZE)
        if not chunk:
            break
        buffer.extend(chunk)
        validate_size(len(buffer), max_bytes)
        if on_progress:
            on_progress(len(buffer), expected)

    return bytes(buffer)


def log_progress(filename: str) -> ProgressCallback:
    """Progress callback that logs at DEBUG."""
    def _report(received: int, expected: Optional[int]) -> None:
        if expected:
            logger.debug("Upload %s: %d/%d bytes (%.0f%%)", filename, received, expected, received * 100 / expected)
        else:
            logger.debug("Upload %s: %d bytes", filename, received)
    return _report


def safe_original_name(filename: Optional[str]) -> str:
    """Strip any client-side path from the original filename."""
    if not filename:
        raise HTTPException(status_code=400, detail="No filename provided")
    name = os.path.basename(filename.replace("\\", "/")).strip()
    if not name:
        raise HTTPException(status_code=400, detail="No filename provided")
    return name


async def extract_text_from_file(file: UploadFile, max_bytes: int):
    """
    Extract text from an uploaded resume.

    Returns:
        Tuple of (extracted_text, filename)

    Raises:
        HTTPException on validation/extraction errors
    """
    filename = safe_original_name(file.filename)
    content = await read_upload(file, max_bytes, log_progress(filename))
    validate_upload(filename, file.content_type, len(content), RESUME_EXTENSIONS, max_bytes)

    text = extract_text(filename, content)
    if not text.strip():
        raise HTTPException(
            status_code=400,
            detail="Could not extract text from file. File may be empty or corrupted."
        )
    return text, filename


def extract_text(filename: str, content: bytes) -> str:
    ext = get_file_extension(filename)
    if ext == '.pdf':
        return extract_from_pdf(content)
    if ext == '.docx':
        return extract_from_docx(content)
    if ext == '.txt':
        return extract_from_txt(content)
    raise HTTPException(status_code=400, detail=f"Cannot extract text from '{ext}' files")


def extract_from_pdf(content: bytes) -> str:
    """Extract text from PDF bytes."""
    try:
        reader = PdfReader(io.BytesIO(content))
        text_parts = []
        for page in reader.pages:
            page_text = page.extract_text()
            if page_text:
                text_parts.append(page_text)
        return '\n'.join(text_parts)
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Error reading PDF: {str(e)}")


def extract_from_docx(content: bytes) -> str:
    """Extract text from DOCX bytes."""
    try:
        doc = Document(io.BytesIO(content))
        text_parts = []

        for para in doc.paragraphs:
            if para.text.strip():
                text_parts.append(para.text)

        for table in doc.tables:
            for row in table.rows:
                row_text = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if row_text:
                    text_parts.append(' | '.join(row_text))

        return '\n'.join(text_parts)
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Error reading DOCX: {str(e)}")


def extract_from_txt(content: bytes) -> str:
    """Extract text from TXT bytes."""
    for encoding in ['utf-8', 'latin-1', 'cp1252']:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise HTTPException(status_code=400, detail="Could not decode text file")
