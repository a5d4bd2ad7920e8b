"""
One-off maintenance jobs.

    pdfqa-maintenance backfill
        Fill in page_count (and size_bytes) for documents uploaded while
        metadata extraction was failing, using the copy held by the backend.

    pdfqa-maintenance cleanup-orphans --owner <user id>
        Delete records whose vector store file no longer exists in the
        owner's collection.
"""

import argparse
import asyncio
import logging
import sys
from typing import Dict, List, Optional

from pdfqa.config import get_settings
from pdfqa.database import close_mongo_connection, connect_to_mongo
from pdfqa.services.document_store import BeanieDocumentStore, DocumentStore
from pdfqa.services.index_client import IndexClient, IndexClientError
from pdfqa.services.pdf_service import count_pdf_pages

logger = logging.getLogger(__name__)


async def backfill_document_metadata(store: DocumentStore, index_client: IndexClient) -> Dict[str, int]:
    records = await store.list_missing_page_count()
    logger.info("Found %d documents without page count", len(records))
    updated = failed = 0
    for record in records:
        try:
            content = await index_client.get_file_content(record.external_file_id)
            page_count = await asyncio.to_thread(count_pdf_pages, content)
            size_bytes = record.size_bytes or len(content)
            await store.update_metadata(record.id, page_count, size_bytes)
        except Exception:
            logger.exception("Metadata backfill failed for document %s", record.id)
            failed += 1
            continue
        logger.info("Document %s: %d pages, %d bytes", record.id, page_count, size_bytes)
        updated += 1
    return {"updated": updated, "failed": failed}


async def remove_orphaned_documents(store: DocumentStore, index_client: IndexClient, owner_id: str) -> List[str]:
    """Returns the ids of the deleted records."""
    collection_id = await store.get_collection_id(owner_id)
    if not collection_id:
        logger.warning("Owner %s has no collection; nothing to clean up", owner_id)
        return []

    valid_ids = await index_client.list_collection_file_ids(collection_id)
    logger.info("Collection %s holds %d files", collection_id, len(valid_ids))

    removed = []
    for record in await store.list_by_owner(owner_id):
        if record.external_collection_file_id and record.external_collection_file_id not in valid_ids:
            logger.info("Deleting orphaned document %s (%s)", record.id, record.filename)
            await store.delete(record.id)
            removed.append(record.id)
    return removed


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="pdfqa-maintenance", description="Document maintenance jobs")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("backfill", help="Backfill missing page counts")
    cleanup = sub.add_parser("cleanup-orphans", help="Delete records missing from the owner's collection")
    cleanup.add_argument("--owner", required=True, help="User id owning the collection")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> None:
    settings = get_settings()
    settings.validate_for_startup()
    await connect_to_mongo(settings)
    index_client = IndexClient.from_settings(settings)
    store = BeanieDocumentStore()
    try:
        if args.command == "backfill":
            result = await backfill_document_metadata(store, index_client)
            logger.info("Backfill finished: %s", result)
        else:
            removed = await remove_orphaned_documents(store, index_client, args.owner)
            logger.info("Removed %d orphaned documents", len(removed))
    finally:
        await index_client.close()
        await close_mongo_connection()


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    args = _parse_args(argv)
    try:
        asyncio.run(_run(args))
    except (ValueError, IndexClientError) as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
