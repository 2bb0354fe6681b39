"""
Database module - relational tables and MongoDB (GridFS) connections.
"""
from referralme.db.postgres import get_db_session, check_database_connection
from referralme.db.mongodb import get_mongo_db

__all__ = [
    "get_db_session",
    "check_database_connection",
    "get_mongo_db",
]
