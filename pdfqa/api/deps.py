"""Dependencies resolving the services built in the lifespan."""

from fastapi import Request

from pdfqa.services.document_service import DocumentService


def get_document_service(request: Request) -> DocumentService:
    return request.app.state.document_service
