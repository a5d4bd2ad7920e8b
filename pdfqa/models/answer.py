"""
Value types for answer jobs and their citations.

These mirror the parts of the OpenAI thread/run/message objects we use, so the
citation post-processor can be exercised without the SDK.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class Annotation(BaseModel):
    """A file citation covering text[start:end] of a text block."""

    start: int
    end: int
    file_id: str


class TextBlock(BaseModel):
    value: str
    annotations: List[Annotation] = Field(default_factory=list)


class AnswerMessage(BaseModel):
    """One thread message as returned by the index client."""

    role: str
    text_blocks: List[TextBlock] = Field(default_factory=list)


class JobHandle(BaseModel):
    """Identifies an answer-generation run inside its thread."""

    thread_id: str
    run_id: str


class JobStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    PENDING = "pending"


class RenderedMessage(BaseModel):
    role: str
    content: str


class QueryOutcome(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMEOUT = "timeout"


class QueryResult(BaseModel):
    status: QueryOutcome
    messages: List[RenderedMessage] = Field(default_factory=list)
    error: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "status": "completed",
                "messages": [
                    {"role": "user", "content": "What is a derivative?"},
                    {
                        "role": "assistant",
                        "content": "The rate of change [Citation from: calculus-notes.pdf].",
                    },
                ],
            }
        }
