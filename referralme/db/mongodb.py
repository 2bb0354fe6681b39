"""
MongoDB Connection Utility

MongoDB backs the GridFS file storage backend (STORAGE_BACKEND=gridfs):
- uploaded resumes, profile images and attachments
- one GridFS bucket, files looked up by their generated filename

The relational database stays the source of truth; MongoDB only holds bytes.
"""
import logging

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from referralme.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        # Fail fast so the upload fallback kicks in instead of hanging 30s
        _client = MongoClient(settings.mongodb_uri, serverSelectionTimeoutMS=3000)
    return _client


def get_mongo_db() -> Database:
    """Get the file storage database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[settings.mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    db = get_mongo_db()
    return db[name]


def init_mongo_indexes():
    """
    Create indexes for GridFS lookups by filename.
    Call this once during app startup when the gridfs backend is enabled.
    """
    files = get_collection(f"{settings.gridfs_bucket}.files")
    files.create_index("filename", unique=True)
    files.create_index("metadata.owner_id")
    logger.info("MongoDB indexes created successfully")
