"""
Document APIs.

POST /upload: send the PDF to the index backend and record it as processing.
GET /status/{id}: reconcile and return the ingestion status (client polls this).
POST /query + GET /result/{thread_id}/{run_id}: submit a question, then poll for
the answer with citations rendered.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, UploadFile, status
from pydantic import BaseModel, ConfigDict

from pdfqa.api.auth import get_current_user
from pdfqa.api.deps import get_document_service
from pdfqa.config import get_settings
from pdfqa.models.answer import JobHandle
from pdfqa.models.document import DocumentRecord
from pdfqa.models.user import CurrentUser
from pdfqa.services.document_service import DocumentNotFoundError, DocumentService, NoCollectionError
from pdfqa.services.index_client import IndexClientError
from pdfqa.services.model_catalog import AVAILABLE_MODELS, get_default_model

logger = logging.getLogger(__name__)
router = APIRouter()

UserDep = Annotated[CurrentUser, Depends(get_current_user)]
ServiceDep = Annotated[DocumentService, Depends(get_document_service)]


class QueryRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    query: str
    model_id: Optional[str] = None


def _serialize(doc: DocumentRecord) -> dict:
    return {
        "id": doc.id,
        "filename": doc.filename,
        "status": doc.status.value,
        "is_active": doc.is_active,
        "page_count": doc.page_count,
        "size_bytes": doc.size_bytes,
        "created_at": doc.created_at.isoformat(),
    }


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")


@router.post(
    "/upload",
    status_code=status.HTTP_201_CREATED,
    response_model=dict,
    summary="Upload a PDF document",
)
async def upload_document(file: UploadFile, current_user: UserDep, service: ServiceDep) -> dict:
    """
    Accept a PDF, push it to the index backend and create a processing record.
    The status may already be ready if the backend picked the file up quickly.
    """
    if not file.filename or not file.filename.lower().endswith(".pdf"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only PDF files are accepted",
        )

    content = await file.read()
    max_mb = get_settings().max_upload_size_mb
    if len(content) > max_mb * 1024 * 1024:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File size exceeds {max_mb} MB",
        )

    try:
        doc = await service.upload_document(current_user, file.filename, content)
    except IndexClientError as e:
        logger.error("Upload of %s failed: %s", file.filename, e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to upload document")
    return _serialize(doc)


@router.get("", response_model=dict, summary="List documents")
async def list_documents(current_user: UserDep, service: ServiceDep) -> dict:
    """Return all documents for the authenticated user (newest first)."""
    docs = await service.list_documents(current_user.id)
    return {"documents": [_serialize(d) for d in docs]}


@router.get("/models", response_model=dict, summary="List answer models")
async def list_models(current_user: UserDep) -> dict:
    return {
        "models": [m.model_dump() for m in AVAILABLE_MODELS],
        "default_model": get_default_model().id,
    }


@router.get("/status/{document_id}", response_model=dict, summary="Check document status")
async def get_document_status(document_id: str, current_user: UserDep, service: ServiceDep) -> dict:
    """Reconcile once with the backend and return the current status."""
    try:
        doc_status = await service.get_status(current_user.id, document_id)
    except DocumentNotFoundError:
        raise _not_found()
    return {"id": document_id, "status": doc_status.value}


@router.put("/{document_id}/toggle-active", response_model=dict, summary="Toggle document active flag")
async def toggle_active(document_id: str, current_user: UserDep, service: ServiceDep) -> dict:
    try:
        doc = await service.toggle_active(current_user.id, document_id)
    except DocumentNotFoundError:
        raise _not_found()
    return _serialize(doc)


@router.delete("/{document_id}", response_model=dict, summary="Delete a document")
async def delete_document(document_id: str, current_user: UserDep, service: ServiceDep) -> dict:
    try:
        await service.delete_document(current_user.id, document_id)
    except DocumentNotFoundError:
        raise _not_found()
    return {"message": "Document deleted successfully"}


@router.post("/query", response_model=dict, summary="Ask a question about active documents")
async def submit_query(body: QueryRequest, current_user: UserDep, service: ServiceDep) -> dict:
    try:
        handle = await service.submit_query(current_user.id, body.query, body.model_id)
    except NoCollectionError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No documents uploaded yet",
        )
    except IndexClientError as e:
        logger.error("Query submission failed: %s", e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to process query")
    return handle.model_dump()


@router.get("/result/{thread_id}/{run_id}", response_model=dict, summary="Get query result")
async def get_query_result(
    thread_id: str,
    run_id: str,
    current_user: UserDep,
    service: ServiceDep,
    wait: bool = False,
) -> dict:
    """
    Return pending / completed / failed. With wait=true the server polls with
    backoff and may answer timeout instead of pending.
    """
    handle = JobHandle(thread_id=thread_id, run_id=run_id)
    try:
        result = await (service.wait_for_result(handle) if wait else service.get_query_result(handle))
    except IndexClientError as e:
        logger.error("Result lookup for run %s failed: %s", run_id, e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to get result")
    return result.model_dump(mode="json", exclude_none=True)
