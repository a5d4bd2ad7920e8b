import io

import pytest
from PyPDF2 import PdfWriter

from pdfqa.workers.maintenance import _parse_args, backfill_document_metadata, remove_orphaned_documents

from conftest import make_record


def _pdf(pages: int) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=72, height=72)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


async def test_backfill_sets_page_count_and_size(store, index_client):
    content = _pdf(3)
    index_client.file_contents["file-a"] = content
    record = store.add(make_record(external_file_id="file-a"))
    sized = store.add(make_record(external_file_id="file-b", size_bytes=999))
    index_client.file_contents["file-b"] = _pdf(1)
    store.add(make_record(external_file_id="file-c", page_count=7))

    result = await backfill_document_metadata(store, index_client)

    assert result == {"updated": 2, "failed": 0}
    assert store.records[record.id].page_count == 3
    assert store.records[record.id].size_bytes == len(content)
    assert store.records[sized.id].page_count == 1
    assert store.records[sized.id].size_bytes == 999


async def test_backfill_continues_past_failures(store, index_client):
    index_client.file_contents["file-bad"] = b"not a pdf"
    store.add(make_record(external_file_id="file-bad"))
    store.add(make_record(external_file_id="file-missing"))
    good = store.add(make_record(external_file_id="file-good"))
    index_client.file_contents["file-good"] = _pdf(2)

    result = await backfill_document_metadata(store, index_client)

    assert result == {"updated": 1, "failed": 2}
    assert store.records[good.id].page_count == 2


async def test_remove_orphaned_documents(store, index_client):
    store.collections["owner-1"] = "vs_1"
    index_client.collection_file_ids = {"vf-kept"}
    kept = store.add(make_record(external_collection_file_id="vf-kept"))
    orphan = store.add(make_record(external_collection_file_id="vf-gone"))
    never_added = store.add(make_record(external_collection_file_id=None))
    other_owner = store.add(make_record(owner_id="owner-2", external_collection_file_id="vf-gone"))

    removed = await remove_orphaned_documents(store, index_client, "owner-1")

    assert removed == [orphan.id]
    assert set(store.records) == {kept.id, never_added.id, other_owner.id}


async def test_remove_orphans_without_collection_is_noop(store, index_client):
    store.add(make_record(external_collection_file_id="vf-gone"))

    assert await remove_orphaned_documents(store, index_client, "owner-1") == []
    assert len(store.records) == 1


def test_cli_arguments():
    assert _parse_args(["backfill"]).command == "backfill"
    args = _parse_args(["cleanup-orphans", "--owner", "abc"])
    assert (args.command, args.owner) == ("cleanup-orphans", "abc")
    with pytest.raises(SystemExit):
        _parse_args(["cleanup-orphans"])
