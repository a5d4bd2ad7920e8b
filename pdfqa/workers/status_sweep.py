"""
Background status sweep.

Every few minutes (STATUS_SWEEP_INTERVAL_MINUTES) all PROCESSING documents,
across all owners, are reconciled. A failure on one document is logged and the
sweep moves on. The job holds no state between runs, so a restart only
delays the next tick.
"""

import asyncio
import logging
from datetime import datetime
from typing import Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from pdfqa.models.document import DocumentRecord, DocumentStatus
from pdfqa.services.document_store import DocumentStore
from pdfqa.services.status_reconciler import StatusReconciler

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "document-status-sweep"


async def sweep_processing_documents(
    store: DocumentStore,
    reconciler: StatusReconciler,
    concurrency: int = 4,
) -> Dict[str, int]:
    """
    Reconcile every PROCESSING document with at most `concurrency` probes in flight.
    Returns counts per outcome (ready / failed / processing / errors).
    """
    records = await store.list_processing()
    summary = {"checked": len(records), "ready": 0, "failed": 0, "processing": 0, "errors": 0}
    if not records:
        logger.debug("No documents in processing status")
        return summary

    logger.info("Status sweep: %d documents in processing status", len(records))
    semaphore = asyncio.Semaphore(concurrency)

    async def reconcile_one(record: DocumentRecord) -> Optional[DocumentStatus]:
        async with semaphore:
            try:
                return await reconciler.reconcile(record)
            except Exception:
                logger.exception("Status sweep failed for document %s", record.id)
                return None

    for status in await asyncio.gather(*(reconcile_one(r) for r in records)):
        if status is None:
            summary["errors"] += 1
        else:
            summary[status.value] += 1

    logger.info(
        "Status sweep done: %d ready, %d failed, %d still processing, %d errors",
        summary["ready"],
        summary["failed"],
        summary["processing"],
        summary["errors"],
    )
    return summary


class StatusSweeper:
    """
    Owns the scheduler running the sweep. Started and stopped by the lifespan.

    Example:
        sweeper = StatusSweeper(store, reconciler, interval_minutes=1)
        sweeper.start()
        ...
        sweeper.shutdown()
    """

    def __init__(
        self,
        store: DocumentStore,
        reconciler: StatusReconciler,
        interval_minutes: float = 1.0,
        concurrency: int = 4,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.store = store
        self.reconciler = reconciler
        self.interval_minutes = interval_minutes
        self.concurrency = concurrency
        self.scheduler = scheduler or AsyncIOScheduler()

    async def run_once(self) -> Dict[str, int]:
        try:
            return await sweep_processing_documents(self.store, self.reconciler, self.concurrency)
        except Exception:
            # Listing failed (e.g. Mongo unavailable); next tick retries
            logger.exception("Status sweep aborted")
            return {}

    def start(self) -> None:
        # First run right away, then on the interval
        self.scheduler.add_job(
            self.run_once,
            "interval",
            minutes=self.interval_minutes,
            id=SWEEP_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(),
        )
        self.scheduler.start()
        logger.info("Document status sweep scheduled every %s minute(s)", self.interval_minutes)

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Document status sweep stopped")
