"""
File Storage Service - persist uploads and hand back a stable locator.

Backends (STORAGE_BACKEND):
- local:  files under UPLOAD_DIR, named <uuid hex><ext>, where <ext> is the
          extension the upload validation resolved, not the client's
- gridfs: one MongoDB GridFS bucket, looked up by the same generated name

Either backend raises StorageUnavailableError when it cannot be reached;
the upload route decides whether to fall back to inline data.
"""

import base64
import logging
import os
import re
import uuid
from typing import Optional

import gridfs
from pymongo.errors import PyMongoError

from referralme.core.config import get_settings
from referralme.db.mongodb import get_mongo_db

settings = get_settings()
logger = logging.getLogger(__name__)

GENERATED_NAME_RE = re.compile(r"^[0-9a-f]{32}(\.[a-z0-9]{1,10})?$")


class StorageUnavailableError(Exception):
    """The storage backend could not be reached or written to."""


def generate_filename(extension: str) -> str:
    ext = (extension or "").lower()
    if not re.fullmatch(r"\.[a-z0-9]{1,10}", ext):
        ext = ""
    return f"{uuid.uuid4().hex}{ext}"


def is_generated_name(filename: str) -> bool:
    return bool(GENERATED_NAME_RE.match(filename))


def file_url(filename: str) -> str:
    return f"/api/files/{filename}"


def filename_from_url(url: Optional[str]) -> Optional[str]:
    """The generated name behind an /api/files/ locator, or None for any other URL."""
    prefix = file_url("")
    if not url or not url.startswith(prefix):
        return None
    name = url[len(prefix):]
    return name if is_generated_name(name) else None


def to_data_url(content: bytes, content_type: Optional[str]) -> str:
    """Inline representation used when the backend is down."""
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{content_type or 'application/octet-stream'};base64,{encoded}"


class LocalFileStorage:
    """Stores files in a directory on the local filesystem."""

    name = "local"

    def __init__(self, directory: str):
        self.directory = directory

    def _path(self, filename: str) -> str:
        return os.path.join(self.directory, filename)

    def save(self, content: bytes, extension: str, original_name: str,
             content_type: Optional[str] = None, owner_id: Optional[str] = None) -> str:
        filename = generate_filename(extension)
        try:
            os.makedirs(self.directory, exist_ok=True)
            with open(self._path(filename), "wb") as f:
                f.write(content)
        except OSError as e:
            raise StorageUnavailableError(f"Local storage write failed: {e}") from e
        logger.info("Stored %s as %s (%d bytes)", original_name, filename, len(content))
        return filename

    def load(self, filename: str) -> Optional[bytes]:
        path = self._path(filename)
        if not os.path.isfile(path):
            return None
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            raise StorageUnavailableError(f"Local storage read failed: {e}") from e

    def delete(self, filename: str) -> bool:
        path = self._path(filename)
        if not os.path.isfile(path):
            return False
        try:
            os.remove(path)
        except OSError as e:
            raise StorageUnavailableError(f"Local storage delete failed: {e}") from e
        logger.info("Deleted %s", filename)
        return True

    def is_available(self) -> bool:
        try:
            os.makedirs(self.directory, exist_ok=True)
        except OSError:
            return False
        return os.access(self.directory, os.W_OK)


class GridFSFileStorage:
    """Stores files in a MongoDB GridFS bucket."""

    name = "gridfs"

    def __init__(self, bucket_name: str):
        self.bucket_name = bucket_name
        self._bucket = None

    @property
    def bucket(self) -> gridfs.GridFSBucket:
        if self._bucket is None:
            self._bucket = gridfs.GridFSBucket(get_mongo_db(), bucket_name=self.bucket_name)
        return self._bucket

    def save(self, content: bytes, extension: str, original_name: str,
             content_type: Optional[str] = None, owner_id: Optional[str] = None) -> str:
        filename = generate_filename(extension)
        try:
            self.bucket.upload_from_stream(
                filename,
                content,
                metadata={
                    "original_name": original_name,
                    "content_type": content_type,
                    "owner_id": owner_id,
                }
            )
        except PyMongoError as e:
            raise StorageUnavailableError(f"GridFS write failed: {e}") from e
        logger.info("Stored %s in GridFS as %s (%d bytes)", original_name, filename, len(content))
        return filename

    def load(self, filename: str) -> Optional[bytes]:
        try:
            with self.bucket.open_download_stream_by_name(filename) as stream:
                return stream.read()
        except gridfs.NoFile:
            return None
        except PyMongoError as e:
            raise StorageUnavailableError(f"GridFS read failed: {e}") from e

    def delete(self, filename: str) -> bool:
        try:
            found = False
            for grid_out in self.bucket.find({"filename": filename}):
                self.bucket.delete(grid_out._id)
                found = True
            return found
        except PyMongoError as e:
            raise StorageUnavailableError(f"GridFS delete failed: {e}") from e

    def is_available(self) -> bool:
        try:
            get_mongo_db().client.admin.command("ping")
            return True
        except PyMongoError:
            return False


_storage = None


def get_file_storage():
    """Get the configured storage backend (singleton pattern)"""
    global _storage
    if _storage is None:
        if settings.storage_backend == "gridfs":
            _storage = GridFSFileStorage(settings.gridfs_bucket)
        elif settings.storage_backend == "local":
            _storage = LocalFileStorage(settings.upload_dir)
        else:
            raise ValueError(f"Unknown STORAGE_BACKEND '{settings.storage_backend}'")
    return _storage
