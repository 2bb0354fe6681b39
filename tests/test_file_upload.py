import asyncio
import io

import pytest
from fastapi import HTTPException, UploadFile

from referralme.utils.file_upload import (
    CHUNK_SIZE, body_too_large, default_allow_list, extract_text, get_file_extension, parse_allow_list,
    read_upload, safe_original_name, validate_upload
)

MB = 1024 * 1024


def make_upload(content: bytes, filename="file.bin", size=None):
    return UploadFile(file=io.BytesIO(content), filename=filename, size=size)


def test_get_file_extension():
    assert get_file_extension("Resume.PDF") == ".pdf"
    assert get_file_extension("archive.tar.gz") == ".gz"
    assert get_file_extension("README") == ""


def test_oversized_file_rejected_regardless_of_type():
    for name, mime in [("cv.pdf", "application/pdf"), ("virus.exe", "application/x-msdownload")]:
        with pytest.raises(HTTPException) as exc:
            validate_upload(name, mime, 10 * MB + 1, default_allow_list(), 10 * MB)
        assert exc.value.status_code == 413


def test_file_at_the_limit_is_accepted():
    validate_upload("cv.pdf", "application/pdf", 10 * MB, default_allow_list(), 10 * MB)


def test_type_outside_allow_list_rejected():
    with pytest.raises(HTTPException) as exc:
        validate_upload("photo.png", "image/png", 100, {".pdf", ".docx"}, MB)
    assert exc.value.status_code == 400


def test_extension_or_mime_is_enough():
    # MIME matches, extension missing
    assert validate_upload("resume", "application/pdf", 100, {"application/pdf"}, MB) == (".pdf", "application/pdf")
    # extension matches, MIME generic
    assert validate_upload("resume.pdf", "application/octet-stream", 100, {".pdf"}, MB) == (".pdf", "application/pdf")


def test_unlisted_extension_is_replaced_by_the_allowed_type():
    assert validate_upload("evil.html", "text/plain", 100, default_allow_list(), MB) == (".txt", "text/plain")
    assert validate_upload("x.svg", "image/png", 100, {"image/png"}, MB) == (".png", "image/png")
    assert validate_upload("photo.JPEG", "text/html", 100, default_allow_list(), MB) == (".jpeg", "image/jpeg")


def test_body_too_large_allows_for_multipart_overhead():
    assert body_too_large(str(MB + 10 * 1024), MB) is False
    assert body_too_large(str(2 * MB), MB) is True
    assert body_too_large(None, MB) is False
    assert body_too_large("chunked", MB) is False


def test_parse_allow_list_narrows_server_list():
    allowed = parse_allow_list(".pdf, docx ,image/png")
    assert allowed == {".pdf", ".docx", "image/png"}


def test_parse_allow_list_drops_unknown_entries():
    assert parse_allow_list(".pdf,.exe") == {".pdf"}


def test_parse_allow_list_rejects_only_unknown_entries():
    with pytest.raises(HTTPException) as exc:
        parse_allow_list(".exe,.sh")
    assert exc.value.status_code == 400


def test_parse_allow_list_defaults_to_server_list():
    assert parse_allow_list(None) == default_allow_list()
    assert ".png" in parse_allow_list("")


def test_read_upload_reports_progress_per_chunk():
    content = b"x" * (2 * CHUNK_SIZE + 100)
    calls = []

    data = asyncio.run(read_upload(
        make_upload(content, size=len(content)),
        MB,
        lambda received, expected: calls.append((received, expected))
    ))

    assert data == content
    assert calls == [
        (CHUNK_SIZE, len(content)),
        (2 * CHUNK_SIZE, len(content)),
        (2 * CHUNK_SIZE + 100, len(content)),
    ]


def test_read_upload_stops_past_the_ceiling_without_declared_size():
    content = b"x" * (3 * CHUNK_SIZE)
    calls = []

    with pytest.raises(HTTPException) as exc:
        asyncio.run(read_upload(
            make_upload(content),
            CHUNK_SIZE + 10,
            lambda received, expected: calls.append(received)
        ))

    assert exc.value.status_code == 413
    # Only the first chunk was reported before the ceiling was crossed
    assert calls == [CHUNK_SIZE]


def test_read_upload_rejects_declared_oversize_before_reading():
    calls = []
    with pytest.raises(HTTPException) as exc:
        asyncio.run(read_upload(make_upload(b"abc", size=5 * MB), MB, lambda r, e: calls.append(r)))
    assert exc.value.status_code == 413
    assert calls == []


def test_safe_original_name_strips_paths():
    assert safe_original_name("C:\\Users\\me\\cv.pdf") == "cv.pdf"
    assert safe_original_name("../../etc/passwd") == "passwd"
    with pytest.raises(HTTPException):
        safe_original_name("")


def test_extract_text_from_txt():
    assert extract_text("cv.txt", "Python developer".encode("utf-8")) == "Python developer"
    assert extract_text("cv.txt", "Caf\xe9".encode("latin-1")) == "Caf\xe9"


def test_extract_text_unsupported_extension():
    with pytest.raises(HTTPException) as exc:
        extract_text("photo.png", b"\x89PNG")
    assert exc.value.status_code == 400
