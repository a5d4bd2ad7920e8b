"""
Document operations exposed to the API layer.

Upload -> optimistic reconcile, status polling -> reconcile, queries ->
active-scope prompt -> answer job -> citation rendering. Route handlers stay
thin and map the exceptions below to HTTP errors.
"""

import asyncio
import logging
from typing import List, Optional

from pdfqa.config import Settings
from pdfqa.models.answer import JobHandle, JobStatus, QueryOutcome, QueryResult, RenderedMessage
from pdfqa.models.document import DocumentRecord, DocumentStatus
from pdfqa.models.user import CurrentUser
from pdfqa.services.citations import CitationPostProcessor
from pdfqa.services.document_store import DocumentStore
from pdfqa.services.index_client import IndexClient, IndexClientError
from pdfqa.services.model_catalog import resolve_model_id
from pdfqa.services.pdf_service import extract_page_count
from pdfqa.services.query_builder import build_query
from pdfqa.services.status_reconciler import StatusReconciler

logger = logging.getLogger(__name__)

GENERIC_ANSWER_ERROR = "Sorry, something went wrong while generating the answer. Please try again."


class DocumentNotFoundError(Exception):
    """Document does not exist or is not owned by the caller."""


class NoCollectionError(Exception):
    """Owner has not uploaded anything yet, so there is nothing to search."""


class DocumentService:
    def __init__(
        self,
        store: DocumentStore,
        index_client: IndexClient,
        reconciler: StatusReconciler,
        settings: Settings,
    ):
        self.store = store
        self.index_client = index_client
        self.reconciler = reconciler
        self.settings = settings
        self.citations = CitationPostProcessor(store.filenames_by_external_ids)

    async def _owned(self, owner_id: str, document_id: str) -> DocumentRecord:
        record = await self.store.get(document_id)
        if record is None or record.owner_id != owner_id:
            raise DocumentNotFoundError(document_id)
        return record

    async def _ensure_collection(self, owner: CurrentUser) -> str:
        collection_id = await self.store.get_collection_id(owner.id)
        if collection_id:
            return collection_id
        collection_id = await self.index_client.create_collection(owner.name)
        await self.store.set_collection_id(owner.id, collection_id)
        return collection_id

    async def upload_document(self, owner: CurrentUser, filename: str, content: bytes) -> DocumentRecord:
        """
        Push the PDF to the backend and record it as PROCESSING.
        Only collection creation and the file upload itself can fail the call.
        """
        page_count = await asyncio.to_thread(extract_page_count, content)
        logger.info("Upload %s for owner %s: %s pages, %d bytes", filename, owner.id, page_count, len(content))

        collection_id = await self._ensure_collection(owner)
        file_id = await self.index_client.upload_file(filename, content)

        collection_file_id: Optional[str] = None
        try:
            collection_file_id = await self.index_client.add_file(collection_id, file_id)
        except IndexClientError as e:
            # Record stays PROCESSING until the forced timeout resolves it
            logger.warning("Could not add file %s to collection %s: %s", file_id, collection_id, e)

        record = await self.store.create(
            owner_id=owner.id,
            filename=filename,
            external_file_id=file_id,
            external_collection_file_id=collection_file_id,
            page_count=page_count,
            size_bytes=len(content),
        )

        try:
            await self.reconciler.reconcile(record)
        except Exception:
            logger.exception("Initial status check failed for document %s; left as processing", record.id)
        return record

    async def list_documents(self, owner_id: str) -> List[DocumentRecord]:
        return await self.store.list_by_owner(owner_id)

    async def get_status(self, owner_id: str, document_id: str) -> DocumentStatus:
        record = await self._owned(owner_id, document_id)
        return await self.reconciler.reconcile(record)

    async def toggle_active(self, owner_id: str, document_id: str) -> DocumentRecord:
        record = await self._owned(owner_id, document_id)
        record.is_active = not record.is_active
        await self.store.set_active(record.id, record.is_active)
        logger.info("Document %s is_active=%s", record.id, record.is_active)
        return record

    async def delete_document(self, owner_id: str, document_id: str) -> None:
        """Remove the backend copies best-effort, then the record."""
        record = await self._owned(owner_id, document_id)
        try:
            await self.index_client.delete_file(record.external_file_id)
        except IndexClientError as e:
            logger.warning("Backend file deletion failed for %s: %s", record.external_file_id, e)

        if record.external_collection_file_id:
            collection_id = await self.store.get_collection_id(owner_id)
            if collection_id:
                try:
                    await self.index_client.delete_collection_file(collection_id, record.external_collection_file_id)
                except IndexClientError as e:
                    logger.warning(
                        "Collection file deletion failed for %s: %s", record.external_collection_file_id, e
                    )

        await self.store.delete(record.id)
        logger.info("Deleted document %s", record.id)

    async def submit_query(self, owner_id: str, text: str, model_id: Optional[str] = None) -> JobHandle:
        collection_id = await self.store.get_collection_id(owner_id)
        if not collection_id:
            raise NoCollectionError(owner_id)

        documents = await self.store.list_by_owner(owner_id)
        query = build_query(text, documents)
        active = sum(1 for d in documents if d.is_active)
        logger.info(
            "Query from %s over %d documents (%d active); scoped=%s",
            owner_id,
            len(documents),
            active,
            query != text,
        )
        return await self.index_client.submit_answer_job(collection_id, query, resolve_model_id(model_id))

    async def get_query_result(self, handle: JobHandle) -> QueryResult:
        status = await self.index_client.get_job_status(handle)
        if status is JobStatus.FAILED:
            return QueryResult(status=QueryOutcome.FAILED, error=GENERIC_ANSWER_ERROR)
        if status is not JobStatus.COMPLETED:
            return QueryResult(status=QueryOutcome.PENDING)

        rendered = []
        for message in await self.index_client.get_job_messages(handle):
            if message.role == "assistant":
                content = await self.citations.render_message(message)
            else:
                content = message.text_blocks[0].value if message.text_blocks else ""
            rendered.append(RenderedMessage(role=message.role, content=content))
        return QueryResult(status=QueryOutcome.COMPLETED, messages=rendered)

    async def wait_for_result(self, handle: JobHandle) -> QueryResult:
        """
        Poll until the job settles, backing off exponentially between attempts.
        Gives up with a TIMEOUT result after result_poll_max_attempts.
        """
        delay = self.settings.result_poll_initial_interval_seconds
        for attempt in range(1, self.settings.result_poll_max_attempts + 1):
            try:
                result = await self.get_query_result(handle)
            except IndexClientError as e:
                logger.warning("Result poll %d for run %s failed: %s", attempt, handle.run_id, e)
            else:
                if result.status is not QueryOutcome.PENDING:
                    return result
            if attempt == self.settings.result_poll_max_attempts:
                break
            await asyncio.sleep(delay)
            delay = min(delay * 2, self.settings.result_poll_max_interval_seconds)

        logger.warning("Run %s still pending after %d polls", handle.run_id, self.settings.result_poll_max_attempts)
        return QueryResult(status=QueryOutcome.TIMEOUT)
