"""
Fire-and-forget dispatch of processing runs.

The caller (typically an upload handler) gets control back immediately;
the run proceeds as a background asyncio task. Runs are single-flight per
document id: dispatching a document that is still being processed returns
the in-flight task instead of starting a second, racing run.
"""

import asyncio
from functools import partial
from pathlib import Path
from typing import Dict, Optional, Set, Union

from clinextract.core.logging_config import get_logger
from clinextract.ingest.pipeline import DocumentProcessingPipeline

logger = get_logger(__name__)


class ProcessingDispatcher:
    """
    Schedules pipeline runs in the background.

    Usage:
        dispatcher = ProcessingDispatcher(pipeline)
        dispatcher.dispatch(document_id, patient_id, pdf_bytes, pdf_path)
        # respond to the client now; processing continues
    """

    def __init__(self, pipeline: DocumentProcessingPipeline):
        self.pipeline = pipeline
        self._inflight: Dict[str, asyncio.Task] = {}

    @property
    def in_flight(self) -> Set[str]:
        return set(self._inflight)

    def dispatch(
        self,
        document_id: str,
        patient_id: str,
        pdf_bytes: Optional[bytes] = None,
        pdf_path: Optional[Union[str, Path]] = None,
    ) -> asyncio.Task:
        """Start (or join) the background run for `document_id`. Must be called inside a running loop."""
        existing = self._inflight.get(document_id)
        if existing is not None and not existing.done():
            logger.info("dispatch_joined_inflight", document_id=document_id)
            return existing

        task = asyncio.create_task(
            self.pipeline.process_document(document_id, patient_id, pdf_bytes, pdf_path),
            name=f"process-{document_id}",
        )
        self._inflight[document_id] = task
        task.add_done_callback(partial(self._on_done, document_id))
        logger.info("dispatch_scheduled", document_id=document_id)
        return task

    def _on_done(self, document_id: str, task: asyncio.Task) -> None:
        if self._inflight.get(document_id) is task:
            del self._inflight[document_id]

        if task.cancelled():
            logger.warning("background_run_cancelled", document_id=document_id)
            return

        error = task.exception()
        if error is not None:
            logger.error(
                "background_run_failed",
                document_id=document_id,
                error_type=type(error).__name__,
                error=str(error),
            )
            return

        result = task.result()
        logger.info(
            "background_run_finished",
            document_id=document_id,
            success=result.success,
            status=result.status.value,
        )

    async def drain(self) -> None:
        """Wait for every in-flight run (used on shutdown and in tests)."""
        if self._inflight:
            await asyncio.gather(*self._inflight.values(), return_exceptions=True)
