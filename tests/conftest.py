"""
Shared fixtures: in-memory store and a scriptable index client.
"""

import uuid
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

import pytest

from pdfqa.config import Settings
from pdfqa.models.answer import AnswerMessage, JobHandle, JobStatus
from pdfqa.models.document import DocumentRecord, DocumentStatus
from pdfqa.models.user import CurrentUser
from pdfqa.services.document_service import DocumentService
from pdfqa.services.document_store import DocumentStore
from pdfqa.services.index_client import IndexClientError
from pdfqa.services.status_reconciler import StatusReconciler

T0 = datetime(2025, 1, 1, 12, 0, 0)


class InMemoryDocumentStore(DocumentStore):
    def __init__(self):
        self.records: Dict[str, DocumentRecord] = {}
        self.collections: Dict[str, str] = {}
        self.status_writes = 0
        self.name_lookups = 0

    def add(self, record: DocumentRecord) -> DocumentRecord:
        self.records[record.id] = record.model_copy()
        return record

    async def create(
        self,
        owner_id,
        filename,
        external_file_id,
        external_collection_file_id=None,
        page_count=None,
        size_bytes=None,
    ) -> DocumentRecord:
        record = DocumentRecord(
            id=uuid.uuid4().hex,
            owner_id=owner_id,
            filename=filename,
            external_file_id=external_file_id,
            external_collection_file_id=external_collection_file_id,
            page_count=page_count,
            size_bytes=size_bytes,
            created_at=T0,
        )
        self.records[record.id] = record.model_copy()
        return record

    async def get(self, document_id: str) -> Optional[DocumentRecord]:
        record = self.records.get(document_id)
        return record.model_copy() if record else None

    async def list_by_owner(self, owner_id: str) -> List[DocumentRecord]:
        docs = [r.model_copy() for r in self.records.values() if r.owner_id == owner_id]
        return sorted(docs, key=lambda r: r.created_at, reverse=True)

    async def list_processing(self) -> List[DocumentRecord]:
        return [r.model_copy() for r in self.records.values() if r.status is DocumentStatus.PROCESSING]

    async def list_missing_page_count(self) -> List[DocumentRecord]:
        return [r.model_copy() for r in self.records.values() if r.page_count is None]

    async def filenames_by_external_ids(self, file_ids: Iterable[str]) -> Dict[str, str]:
        self.name_lookups += 1
        ids = set(file_ids)
        return {r.external_file_id: r.filename for r in self.records.values() if r.external_file_id in ids}

    async def update_status(self, document_id: str, status: DocumentStatus) -> bool:
        record = self.records.get(document_id)
        if record is None or record.status is not DocumentStatus.PROCESSING:
            return False
        record.status = status
        self.status_writes += 1
        return True

    async def set_active(self, document_id: str, is_active: bool) -> None:
        self.records[document_id].is_active = is_active

    async def update_metadata(self, document_id, page_count, size_bytes) -> None:
        self.records[document_id].page_count = page_count
        self.records[document_id].size_bytes = size_bytes

    async def delete(self, document_id: str) -> None:
        self.records.pop(document_id, None)

    async def get_collection_id(self, owner_id: str) -> Optional[str]:
        return self.collections.get(owner_id)

    async def set_collection_id(self, owner_id: str, collection_id: str) -> None:
        self.collections[owner_id] = collection_id


class FakeIndexClient:
    """Mimics IndexClient; set attributes to script backend behaviour."""

    def __init__(self):
        self.files = set()
        self.collection_status: Dict[str, str] = {}
        self.default_collection_status = "in_progress"
        self.file_error: Optional[Exception] = None
        self.status_error: Optional[Exception] = None
        self.create_collection_error: Optional[Exception] = None
        self.add_file_error: Optional[Exception] = None
        self.delete_error: Optional[Exception] = None
        self.probe_calls = 0
        self.created_collections: List[str] = []
        self.deleted_files: List[str] = []
        self.deleted_collection_files: List[tuple] = []
        self.collection_file_ids = set()
        self.file_contents: Dict[str, bytes] = {}
        self.submitted: List[dict] = []
        self.job_statuses: List[JobStatus] = [JobStatus.COMPLETED]
        self.job_status_calls = 0
        self.messages: List[AnswerMessage] = []

    async def create_collection(self, owner_label: str) -> str:
        if self.create_collection_error:
            raise self.create_collection_error
        collection_id = f"vs_{len(self.created_collections) + 1}"
        self.created_collections.append(collection_id)
        return collection_id

    async def upload_file(self, filename: str, content: bytes) -> str:
        file_id = f"file-{len(self.files) + 1}"
        self.files.add(file_id)
        return file_id

    async def add_file(self, collection_id: str, file_id: str) -> str:
        if self.add_file_error:
            raise self.add_file_error
        collection_file_id = f"vf-{file_id}"
        self.collection_file_ids.add(collection_file_id)
        return collection_file_id

    async def get_file(self, file_id: str) -> bool:
        self.probe_calls += 1
        if self.file_error:
            raise self.file_error
        return file_id in self.files

    async def get_collection_file_status(self, collection_id: str, collection_file_id: str) -> str:
        self.probe_calls += 1
        if self.status_error:
            raise self.status_error
        return self.collection_status.get(collection_file_id, self.default_collection_status)

    async def list_collection_file_ids(self, collection_id: str):
        return set(self.collection_file_ids)

    async def delete_file(self, file_id: str) -> None:
        if self.delete_error:
            raise self.delete_error
        self.deleted_files.append(file_id)

    async def delete_collection_file(self, collection_id: str, collection_file_id: str) -> None:
        if self.delete_error:
            raise self.delete_error
        self.deleted_collection_files.append((collection_id, collection_file_id))

    async def get_file_content(self, file_id: str) -> bytes:
        if file_id not in self.file_contents:
            raise IndexClientError(f"no content for {file_id}")
        return self.file_contents[file_id]

    async def submit_answer_job(self, collection_id: str, query: str, model_id: str) -> JobHandle:
        self.submitted.append({"collection_id": collection_id, "query": query, "model_id": model_id})
        return JobHandle(thread_id="thread_1", run_id=f"run_{len(self.submitted)}")

    async def get_job_status(self, handle: JobHandle) -> JobStatus:
        self.job_status_calls += 1
        index = min(self.job_status_calls, len(self.job_statuses)) - 1
        return self.job_statuses[index]

    async def get_job_messages(self, handle: JobHandle) -> List[AnswerMessage]:
        return list(self.messages)


class Clock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_record(**overrides) -> DocumentRecord:
    fields = dict(
        id=uuid.uuid4().hex,
        owner_id="owner-1",
        filename="calculus-notes.pdf",
        external_file_id="file-1",
        external_collection_file_id="vf-file-1",
        status=DocumentStatus.PROCESSING,
        created_at=T0,
    )
    fields.update(overrides)
    return DocumentRecord(**fields)


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def index_client():
    return FakeIndexClient()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def reconciler(index_client, store, clock):
    return StatusReconciler(index_client, store, processing_timeout=timedelta(minutes=5), clock=clock)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        openai_api_key="sk-test",
        openai_assistant_id="asst_test",
        jwt_secret="x" * 40,
        result_poll_initial_interval_seconds=0.001,
        result_poll_max_interval_seconds=0.002,
        result_poll_max_attempts=3,
    )


@pytest.fixture
def service(store, index_client, reconciler, settings):
    return DocumentService(store, index_client, reconciler, settings)


@pytest.fixture
def owner():
    return CurrentUser(id="owner-1", email="ada@example.com", name="Ada")
