"""
Ingestion status reconciliation.

The backend never pushes a "done" signal, so a document's status is pulled:
right after upload, on every client status poll, and by the background sweep.
All three call StatusReconciler.reconcile(), which is idempotent and safe to
run concurrently for the same record.

Resolution order for a PROCESSING record:
  1. the file must still exist in the backend,
  2. the vector store file status decides: completed / in_progress -> READY,
     failed -> FAILED,
  3. otherwise, once the record is older than the processing timeout it is
     forced to READY.

in_progress maps to READY because the store is searchable before ingestion
fully completes.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from pdfqa.models.document import DocumentRecord, DocumentStatus
from pdfqa.services.document_store import DocumentStore
from pdfqa.services.index_client import (
    FILE_COMPLETED,
    FILE_FAILED,
    FILE_IN_PROGRESS,
    IndexClient,
    IndexClientError,
)

logger = logging.getLogger(__name__)

DEFAULT_PROCESSING_TIMEOUT = timedelta(minutes=5)


def map_collection_file_status(backend_status: str) -> Optional[DocumentStatus]:
    """Local status for a vector store file status, or None if it tells us nothing."""
    if backend_status in (FILE_COMPLETED, FILE_IN_PROGRESS):
        return DocumentStatus.READY
    if backend_status == FILE_FAILED:
        return DocumentStatus.FAILED
    return None


class StatusReconciler:
    def __init__(
        self,
        index_client: IndexClient,
        store: DocumentStore,
        processing_timeout: timedelta = DEFAULT_PROCESSING_TIMEOUT,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.index_client = index_client
        self.store = store
        self.processing_timeout = processing_timeout
        self.clock = clock

    async def reconcile(self, record: DocumentRecord) -> DocumentStatus:
        """
        Resolve the record's current status and persist it if it changed.
        The record is updated in place.
        """
        if record.status.is_terminal:
            return record.status

        resolved = await self._probe(record)
        if resolved is None and self._timed_out(record):
            logger.info(
                "Document %s processing for over %s; forcing status to ready",
                record.id,
                self.processing_timeout,
            )
            resolved = DocumentStatus.READY

        if resolved is None:
            return record.status

        if await self.store.update_status(record.id, resolved):
            logger.info("Document %s status %s -> %s", record.id, record.status.value, resolved.value)
            record.status = resolved
            return resolved

        # Another call resolved it first; the stored value wins.
        current = await self.store.get(record.id)
        if current is not None:
            record.status = current.status
        return record.status

    async def _probe(self, record: DocumentRecord) -> Optional[DocumentStatus]:
        try:
            exists = await self.index_client.get_file(record.external_file_id)
        except IndexClientError as e:
            logger.warning("File probe failed for document %s: %s", record.id, e)
            return None
        if not exists:
            logger.warning("File %s for document %s not found in backend", record.external_file_id, record.id)
            return None

        if not record.external_collection_file_id:
            logger.debug("Document %s has no collection file id", record.id)
            return None
        collection_id = await self.store.get_collection_id(record.owner_id)
        if not collection_id:
            logger.debug("Owner %s has no collection", record.owner_id)
            return None

        try:
            backend_status = await self.index_client.get_collection_file_status(
                collection_id, record.external_collection_file_id
            )
        except IndexClientError as e:
            logger.warning("Collection status probe failed for document %s: %s", record.id, e)
            return None
        logger.debug("Document %s collection file status: %s", record.id, backend_status)
        return map_collection_file_status(backend_status)

    def _timed_out(self, record: DocumentRecord) -> bool:
        return self.clock() - record.created_at > self.processing_timeout
