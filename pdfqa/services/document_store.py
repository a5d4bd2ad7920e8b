"""
Document record store.

DocumentStore is the contract the services depend on; BeanieDocumentStore
implements it on top of the PdfDocument and User collections.

Status and is_active are written with field-scoped $set updates, never by
saving a whole document, so a toggle can't overwrite a status resolved by a
concurrent reconcile (or the other way round).
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from beanie import PydanticObjectId
from beanie.operators import In, Set
from bson import ObjectId

from pdfqa.models.document import DocumentRecord, DocumentStatus, PdfDocument
from pdfqa.models.user import User

logger = logging.getLogger(__name__)


class DocumentStore(ABC):
    """Key/value store of document records plus the owner's collection id."""

    @abstractmethod
    async def create(
        self,
        owner_id: str,
        filename: str,
        external_file_id: str,
        external_collection_file_id: Optional[str] = None,
        page_count: Optional[int] = None,
        size_bytes: Optional[int] = None,
    ) -> DocumentRecord: ...

    @abstractmethod
    async def get(self, document_id: str) -> Optional[DocumentRecord]: ...

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> List[DocumentRecord]: ...

    @abstractmethod
    async def list_processing(self) -> List[DocumentRecord]: ...

    @abstractmethod
    async def list_missing_page_count(self) -> List[DocumentRecord]: ...

    @abstractmethod
    async def filenames_by_external_ids(self, file_ids: Iterable[str]) -> Dict[str, str]:
        """Resolve many external file ids to filenames in a single lookup."""

    @abstractmethod
    async def update_status(self, document_id: str, status: DocumentStatus) -> bool:
        """
        Set status only while the stored status is still PROCESSING.
        Returns True when the write was applied.
        """

    @abstractmethod
    async def set_active(self, document_id: str, is_active: bool) -> None: ...

    @abstractmethod
    async def update_metadata(
        self, document_id: str, page_count: Optional[int], size_bytes: Optional[int]
    ) -> None: ...

    @abstractmethod
    async def delete(self, document_id: str) -> None: ...

    @abstractmethod
    async def get_collection_id(self, owner_id: str) -> Optional[str]: ...

    @abstractmethod
    async def set_collection_id(self, owner_id: str, collection_id: str) -> None: ...


def _object_id(value: str) -> Optional[PydanticObjectId]:
    if not ObjectId.is_valid(value):
        return None
    return PydanticObjectId(value)


class BeanieDocumentStore(DocumentStore):
    """MongoDB-backed store. Requires connect_to_mongo() to have run."""

    async def create(
        self,
        owner_id: str,
        filename: str,
        external_file_id: str,
        external_collection_file_id: Optional[str] = None,
        page_count: Optional[int] = None,
        size_bytes: Optional[int] = None,
    ) -> DocumentRecord:
        doc = PdfDocument(
            owner_id=PydanticObjectId(owner_id),
            filename=filename,
            external_file_id=external_file_id,
            external_collection_file_id=external_collection_file_id,
            status=DocumentStatus.PROCESSING,
            page_count=page_count,
            size_bytes=size_bytes,
        )
        await doc.insert()
        return doc.to_record()

    async def get(self, document_id: str) -> Optional[DocumentRecord]:
        oid = _object_id(document_id)
        if oid is None:
            return None
        doc = await PdfDocument.get(oid)
        return doc.to_record() if doc else None

    async def list_by_owner(self, owner_id: str) -> List[DocumentRecord]:
        oid = _object_id(owner_id)
        if oid is None:
            return []
        docs = await PdfDocument.find(PdfDocument.owner_id == oid).sort(-PdfDocument.created_at).to_list()
        return [d.to_record() for d in docs]

    async def list_processing(self) -> List[DocumentRecord]:
        docs = await PdfDocument.find(PdfDocument.status == DocumentStatus.PROCESSING).to_list()
        return [d.to_record() for d in docs]

    async def list_missing_page_count(self) -> List[DocumentRecord]:
        docs = await PdfDocument.find({"$or": [{"page_count": {"$exists": False}}, {"page_count": None}]}).to_list()
        return [d.to_record() for d in docs]

    async def filenames_by_external_ids(self, file_ids: Iterable[str]) -> Dict[str, str]:
        ids = list(set(file_ids))
        if not ids:
            return {}
        docs = await PdfDocument.find(In(PdfDocument.external_file_id, ids)).to_list()
        return {d.external_file_id: d.filename for d in docs}

    async def update_status(self, document_id: str, status: DocumentStatus) -> bool:
        oid = _object_id(document_id)
        if oid is None:
            return False
        result = await PdfDocument.find_one(
            PdfDocument.id == oid,
            PdfDocument.status == DocumentStatus.PROCESSING,
        ).update(Set({PdfDocument.status: status, PdfDocument.updated_at: datetime.utcnow()}))
        return bool(result and result.modified_count)

    async def set_active(self, document_id: str, is_active: bool) -> None:
        oid = _object_id(document_id)
        if oid is None:
            return
        await PdfDocument.find_one(PdfDocument.id == oid).update(
            Set({PdfDocument.is_active: is_active, PdfDocument.updated_at: datetime.utcnow()})
        )

    async def update_metadata(
        self, document_id: str, page_count: Optional[int], size_bytes: Optional[int]
    ) -> None:
        oid = _object_id(document_id)
        if oid is None:
            return
        await PdfDocument.find_one(PdfDocument.id == oid).update(
            Set(
                {
                    PdfDocument.page_count: page_count,
                    PdfDocument.size_bytes: size_bytes,
                    PdfDocument.updated_at: datetime.utcnow(),
                }
            )
        )

    async def delete(self, document_id: str) -> None:
        oid = _object_id(document_id)
        if oid is None:
            return
        await PdfDocument.find_one(PdfDocument.id == oid).delete()

    async def get_collection_id(self, owner_id: str) -> Optional[str]:
        oid = _object_id(owner_id)
        if oid is None:
            return None
        user = await User.get(oid)
        return user.collection_id if user else None

    async def set_collection_id(self, owner_id: str, collection_id: str) -> None:
        oid = _object_id(owner_id)
        if oid is None:
            return
        await User.find_one(User.id == oid).update(Set({User.collection_id: collection_id}))
        logger.info("Cached collection %s for owner %s", collection_id, owner_id)
