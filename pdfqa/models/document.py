"""
Document model for uploaded PDFs.

PdfDocument is the Beanie persistence model. DocumentRecord is the plain shape
handed to the services, so the reconciler and the query path never depend on
an initialized Motor connection.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document, PydanticObjectId
from pydantic import BaseModel, Field


class DocumentStatus(str, Enum):
    """Ingestion states of a document in the indexing backend."""

    PROCESSING = "processing"  # Uploaded, index not confirmed yet
    READY = "ready"  # Searchable (or forced ready after the timeout)
    FAILED = "failed"  # Backend reported a failed ingestion

    @property
    def is_terminal(self) -> bool:
        return self is not DocumentStatus.PROCESSING


class DocumentRecord(BaseModel):
    """Document metadata as seen by the services."""

    id: str
    owner_id: str
    filename: str
    external_file_id: str
    external_collection_file_id: Optional[str] = None
    status: DocumentStatus = DocumentStatus.PROCESSING
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    page_count: Optional[int] = None
    size_bytes: Optional[int] = None


class PdfDocument(Document):
    """
    Represents an uploaded PDF and its ingestion state.
    owner_id is the User id; external ids point into the OpenAI backend.
    """

    owner_id: PydanticObjectId
    filename: str
    external_file_id: str  # OpenAI file id
    external_collection_file_id: Optional[str] = None  # Vector store file id
    status: DocumentStatus = DocumentStatus.PROCESSING
    is_active: bool = True
    page_count: Optional[int] = None
    size_bytes: Optional[int] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "documents"
        use_state_management = True
        indexes = ["owner_id", "external_file_id", "status"]

    class Config:
        json_schema_extra = {
            "example": {
                "filename": "calculus-notes.pdf",
                "external_file_id": "file-abc123",
                "external_collection_file_id": "file-abc123",
                "status": "processing",
                "is_active": True,
                "created_at": "2025-01-01T00:00:00Z",
            }
        }

    def to_record(self) -> DocumentRecord:
        return DocumentRecord(
            id=str(self.id),
            owner_id=str(self.owner_id),
            filename=self.filename,
            external_file_id=self.external_file_id,
            external_collection_file_id=self.external_collection_file_id,
            status=self.status,
            is_active=self.is_active,
            created_at=self.created_at,
            page_count=self.page_count,
            size_bytes=self.size_bytes,
        )
