"""Beanie document models and Pydantic schemas."""

from pdfqa.models.answer import (
    Annotation,
    AnswerMessage,
    JobHandle,
    JobStatus,
    QueryOutcome,
    QueryResult,
    RenderedMessage,
    TextBlock,
)
from pdfqa.models.document import DocumentRecord, DocumentStatus, PdfDocument
from pdfqa.models.user import CurrentUser, User

__all__ = [
    "User",
    "CurrentUser",
    "PdfDocument",
    "DocumentRecord",
    "DocumentStatus",
    "Annotation",
    "TextBlock",
    "AnswerMessage",
    "JobHandle",
    "JobStatus",
    "QueryOutcome",
    "QueryResult",
    "RenderedMessage",
]
