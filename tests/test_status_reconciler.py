import pytest

from pdfqa.models.document import DocumentStatus
from pdfqa.services.index_client import IndexClientError
from pdfqa.services.status_reconciler import map_collection_file_status

from conftest import make_record


@pytest.fixture
def processing(store, index_client):
    index_client.files.add("file-1")
    store.collections["owner-1"] = "vs_1"
    return store.add(make_record())


@pytest.mark.parametrize("status", [DocumentStatus.READY, DocumentStatus.FAILED])
async def test_terminal_records_are_not_probed_or_written(store, index_client, reconciler, status):
    record = store.add(make_record(status=status))

    assert await reconciler.reconcile(record) is status
    assert index_client.probe_calls == 0
    assert store.status_writes == 0


async def test_in_progress_counts_as_ready(store, index_client, reconciler, processing):
    index_client.collection_status["vf-file-1"] = "in_progress"

    assert await reconciler.reconcile(processing) is DocumentStatus.READY
    assert store.records[processing.id].status is DocumentStatus.READY
    assert processing.status is DocumentStatus.READY


async def test_completed_is_ready_and_failed_is_failed(store, index_client, reconciler):
    index_client.files.update({"file-a", "file-b"})
    store.collections["owner-1"] = "vs_1"
    done = store.add(make_record(external_file_id="file-a", external_collection_file_id="vf-a"))
    broken = store.add(make_record(external_file_id="file-b", external_collection_file_id="vf-b"))
    index_client.collection_status.update({"vf-a": "completed", "vf-b": "failed"})

    assert await reconciler.reconcile(done) is DocumentStatus.READY
    assert await reconciler.reconcile(broken) is DocumentStatus.FAILED
    assert store.records[broken.id].status is DocumentStatus.FAILED


async def test_indeterminate_status_keeps_young_record_processing(store, index_client, reconciler, processing):
    index_client.collection_status["vf-file-1"] = "cancelled"

    assert await reconciler.reconcile(processing) is DocumentStatus.PROCESSING
    assert store.status_writes == 0


async def test_reconcile_is_idempotent(store, index_client, reconciler, processing):
    first = await reconciler.reconcile(processing)
    second = await reconciler.reconcile(processing)

    assert first is second is DocumentStatus.READY
    assert store.status_writes == 1


async def test_stale_copy_does_not_write_twice(store, index_client, reconciler, processing):
    stale = processing.model_copy()

    await reconciler.reconcile(processing)
    assert await reconciler.reconcile(stale) is DocumentStatus.READY
    assert store.status_writes == 1


async def test_concurrent_terminal_result_is_not_clobbered(store, index_client, reconciler, processing):
    # A racing call already stored FAILED; our probe says in_progress
    store.records[processing.id].status = DocumentStatus.FAILED

    assert await reconciler.reconcile(processing) is DocumentStatus.FAILED
    assert store.records[processing.id].status is DocumentStatus.FAILED


async def test_forced_ready_only_after_timeout(store, index_client, reconciler, clock, processing):
    index_client.status_error = IndexClientError("backend down")

    clock.advance(minutes=4)
    assert await reconciler.reconcile(processing) is DocumentStatus.PROCESSING
    assert store.status_writes == 0

    clock.advance(minutes=2)
    assert await reconciler.reconcile(processing) is DocumentStatus.READY
    assert store.records[processing.id].status is DocumentStatus.READY
    assert store.status_writes == 1


async def test_file_probe_error_falls_back_to_timeout(store, index_client, reconciler, clock, processing):
    index_client.file_error = IndexClientError("timeout")

    assert await reconciler.reconcile(processing) is DocumentStatus.PROCESSING
    clock.advance(minutes=6)
    assert await reconciler.reconcile(processing) is DocumentStatus.READY


async def test_missing_backend_file_skips_collection_probe(store, index_client, reconciler, processing):
    index_client.files.clear()

    assert await reconciler.reconcile(processing) is DocumentStatus.PROCESSING
    assert index_client.probe_calls == 1


async def test_record_without_collection_file_relies_on_timeout(store, index_client, reconciler, clock):
    index_client.files.add("file-1")
    store.collections["owner-1"] = "vs_1"
    record = store.add(make_record(external_collection_file_id=None))

    assert await reconciler.reconcile(record) is DocumentStatus.PROCESSING
    clock.advance(minutes=10)
    assert await reconciler.reconcile(record) is DocumentStatus.READY


async def test_owner_without_collection_relies_on_timeout(store, index_client, reconciler):
    index_client.files.add("file-1")
    record = store.add(make_record())

    assert await reconciler.reconcile(record) is DocumentStatus.PROCESSING
    assert index_client.probe_calls == 1


async def test_reconcile_leaves_is_active_alone(store, index_client, reconciler, processing):
    store.records[processing.id].is_active = False
    processing.is_active = False

    await reconciler.reconcile(processing)
    assert store.records[processing.id].is_active is False


@pytest.mark.parametrize(
    "backend, expected",
    [
        ("completed", DocumentStatus.READY),
        ("in_progress", DocumentStatus.READY),
        ("failed", DocumentStatus.FAILED),
        ("cancelled", None),
        ("", None),
    ],
)
def test_map_collection_file_status(backend, expected):
    assert map_collection_file_status(backend) is expected
