"""
Index client: the OpenAI files / vector stores / assistants backend.

One instance is built in the lifespan and injected into the services. Every
SDK error is re-raised as IndexClientError so callers can treat the backend as
a single unreliable dependency.
"""

import functools
import logging
from typing import Any, Dict, List, Optional, Set

import openai
from openai import AsyncOpenAI

from pdfqa.config import Settings
from pdfqa.models.answer import Annotation, AnswerMessage, JobHandle, JobStatus, TextBlock

logger = logging.getLogger(__name__)

# Vector store file states as reported by the backend
FILE_COMPLETED = "completed"
FILE_IN_PROGRESS = "in_progress"
FILE_FAILED = "failed"

# Run states that will never turn into "completed"
_FAILED_RUN_STATES = {"failed", "cancelled", "expired", "incomplete"}


class IndexClientError(Exception):
    """Any failure talking to the indexing backend."""


class IndexFileNotFoundError(IndexClientError):
    """The backend does not know the requested file."""


def _wrap_errors(func):
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except openai.NotFoundError as e:
            raise IndexFileNotFoundError(str(e)) from e
        except openai.OpenAIError as e:
            raise IndexClientError(f"{func.__name__} failed: {e}") from e

    return wrapper


def _run_options(model_id: str) -> Dict[str, Any]:
    """Per-model run overrides."""
    options: Dict[str, Any] = {}
    # gpt-4o-mini runs on the assistant's configured model
    if model_id != "gpt-4o-mini":
        options["model"] = model_id
    if model_id.startswith("o3"):
        options["reasoning_effort"] = "medium"
    return options


class IndexClient:
    """Thin async wrapper around the OpenAI SDK calls the service needs."""

    def __init__(self, client: AsyncOpenAI, assistant_id: str, instructions: Optional[str] = None):
        self._client = client
        self._assistant_id = assistant_id
        self._instructions = instructions

    @classmethod
    def from_settings(cls, settings: Settings) -> "IndexClient":
        return cls(
            AsyncOpenAI(api_key=settings.openai_api_key),
            assistant_id=settings.openai_assistant_id or "",
            instructions=settings.answer_instructions,
        )

    async def close(self) -> None:
        await self._client.close()

    # Collections and files

    @_wrap_errors
    async def create_collection(self, owner_label: str) -> str:
        store = await self._client.vector_stores.create(name=f"{owner_label}'s Vector Store")
        logger.info("Created vector store %s for %s", store.id, owner_label)
        return store.id

    @_wrap_errors
    async def upload_file(self, filename: str, content: bytes) -> str:
        uploaded = await self._client.files.create(file=(filename, content), purpose="assistants")
        logger.info("Uploaded %s as file %s", filename, uploaded.id)
        return uploaded.id

    @_wrap_errors
    async def add_file(self, collection_id: str, file_id: str) -> str:
        vector_file = await self._client.vector_stores.files.create(
            vector_store_id=collection_id, file_id=file_id
        )
        return vector_file.id

    async def get_file(self, file_id: str) -> bool:
        """True if the file exists; False if the backend reports it missing."""
        try:
            await self._retrieve_file(file_id)
        except IndexFileNotFoundError:
            return False
        return True

    @_wrap_errors
    async def _retrieve_file(self, file_id: str) -> None:
        await self._client.files.retrieve(file_id)

    @_wrap_errors
    async def get_collection_file_status(self, collection_id: str, collection_file_id: str) -> str:
        vector_file = await self._client.vector_stores.files.retrieve(
            collection_file_id, vector_store_id=collection_id
        )
        return vector_file.status

    @_wrap_errors
    async def list_collection_file_ids(self, collection_id: str) -> Set[str]:
        ids = set()
        async for vector_file in self._client.vector_stores.files.list(vector_store_id=collection_id):
            ids.add(vector_file.id)
        return ids

    @_wrap_errors
    async def delete_file(self, file_id: str) -> None:
        await self._client.files.delete(file_id)

    @_wrap_errors
    async def delete_collection_file(self, collection_id: str, collection_file_id: str) -> None:
        await self._client.vector_stores.files.delete(collection_file_id, vector_store_id=collection_id)

    @_wrap_errors
    async def get_file_content(self, file_id: str) -> bytes:
        response = await self._client.files.content(file_id)
        return response.content

    # Answer jobs

    @_wrap_errors
    async def submit_answer_job(self, collection_id: str, query: str, model_id: str) -> JobHandle:
        """
        Start a file_search run on a fresh thread scoped to the owner's vector store.
        """
        thread = await self._client.beta.threads.create(
            messages=[{"role": "user", "content": query}],
            tool_resources={"file_search": {"vector_store_ids": [collection_id]}},
        )
        run_kwargs = _run_options(model_id)
        if self._instructions:
            run_kwargs["additional_instructions"] = self._instructions
        run = await self._client.beta.threads.runs.create(
            thread_id=thread.id,
            assistant_id=self._assistant_id,
            tools=[{"type": "file_search"}],
            **run_kwargs,
        )
        logger.info("Started run %s on thread %s (model=%s)", run.id, thread.id, model_id)
        return JobHandle(thread_id=thread.id, run_id=run.id)

    @_wrap_errors
    async def get_job_status(self, handle: JobHandle) -> JobStatus:
        run = await self._client.beta.threads.runs.retrieve(handle.run_id, thread_id=handle.thread_id)
        if run.status == "completed":
            return JobStatus.COMPLETED
        if run.status in _FAILED_RUN_STATES:
            logger.warning("Run %s ended with %s: %s", handle.run_id, run.status, run.last_error)
            return JobStatus.FAILED
        return JobStatus.PENDING

    @_wrap_errors
    async def get_job_messages(self, handle: JobHandle) -> List[AnswerMessage]:
        page = await self._client.beta.threads.messages.list(thread_id=handle.thread_id, order="asc")
        return [_to_answer_message(msg) for msg in page.data]


def _to_answer_message(msg: Any) -> AnswerMessage:
    blocks = []
    for item in msg.content or []:
        if item.type != "text":
            continue
        annotations = [
            Annotation(start=a.start_index, end=a.end_index, file_id=a.file_citation.file_id)
            for a in (item.text.annotations or [])
            if a.type == "file_citation"
        ]
        blocks.append(TextBlock(value=item.text.value, annotations=annotations))
    return AnswerMessage(role=msg.role, text_blocks=blocks)
