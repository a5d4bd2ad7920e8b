"""
User model for MongoDB (Beanie ODM).

Stores the profile created at sign-in and the owner's vector store id, which is
created lazily on the first upload and reused for every later upload and query.
"""

from datetime import datetime
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, Field


class User(Document):
    """
    User document. id is MongoDB ObjectId and is the "_id" claim of our JWTs.
    """

    email: Indexed(str, unique=True)
    name: str
    picture: Optional[str] = None
    google_id: Optional[str] = None
    collection_id: Optional[str] = None  # OpenAI vector store id
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "users"
        use_state_management = True

    class Config:
        json_schema_extra = {
            "example": {
                "email": "user@example.com",
                "name": "Ada",
                "collection_id": "vs_abc123",
                "created_at": "2025-01-01T00:00:00Z",
            }
        }


class CurrentUser(BaseModel):
    """Authenticated caller, resolved from the bearer token."""

    id: str
    email: str
    name: str
