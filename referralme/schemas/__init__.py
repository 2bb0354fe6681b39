"""
Schemas module - Request/Response schemas for API endpoints.

Request models are closed records (unknown keys rejected); response models
mirror the table rows in referralme.db.schema.
"""
