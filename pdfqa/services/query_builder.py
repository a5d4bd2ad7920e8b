"""
Active-scope query building.

The vector store is not filtered per query, so limiting an answer to the
user's active documents is done in the prompt: the query is prefixed with the
filenames to use and the filenames to ignore. How well that holds depends on
the model following the instruction.
"""

from typing import Iterable

from pdfqa.models.document import DocumentRecord


def _quoted(records) -> str:
    return ", ".join(f'"{r.filename}"' for r in records)


def build_query(user_query: str, documents: Iterable[DocumentRecord]) -> str:
    """Return the query to submit; unchanged unless some documents are inactive."""
    documents = list(documents)
    active = [d for d in documents if d.is_active]
    inactive = [d for d in documents if not d.is_active]
    if not active or not inactive:
        return user_query
    return (
        f"IMPORTANT: Please ONLY use information from these documents: {_quoted(active)}.\n"
        f"COMPLETELY IGNORE these documents: {_quoted(inactive)}.\n"
        f"\n"
        f"Query: {user_query}"
    )
