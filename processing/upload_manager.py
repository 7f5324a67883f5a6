"""
Upload orchestration.

Ties the completion ledger, the bounded task queue, the file processor
and the notifier together: every upload is tracked, queued, processed in
a worker thread and reported back to the user.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional

from models.uploadedfile import UploadedFile
from processing.completion_ledger import CompletionLedger
from processing.file_processor import FileProcessor, status_for
from processing.queue_manager import BoundedTaskQueue, WorkItem
from utils.notifier import Notifier

logger = logging.getLogger(__name__)

EXTRACTED_PROGRESS = 50


class UploadManager:
    """
    Queues uploads for ingestion and tracks their progress.

    All collaborators are injected so the API layer and the tests can share
    or replace them.
    """

    def __init__(self,
                 queue: BoundedTaskQueue,
                 ledger: CompletionLedger,
                 processor: FileProcessor,
                 notifier: Notifier):
        self.queue = queue
        self.ledger = ledger
        self.processor = processor
        self.notifier = notifier

    def add_file_to_upload(self, upload: UploadedFile) -> bool:
        """
        Track an upload and submit it to the queue.

        Returns:
            bool: True if the queue accepted the upload
        """
        if self.queue.is_shutdown():
            logger.warning(f"Upload rejected, queue is shut down: {upload.name}")
            return False

        self.ledger.track(upload.id, upload.name)
        accepted = self.queue.submit(WorkItem(payload=upload, action=lambda: self._upload(upload)))
        if not accepted:
            self.ledger.discard(upload.id)
        return accepted

    def add_files_to_upload(self, uploads: Iterable[UploadedFile]) -> List[str]:
        """Submit uploads in order; returns ids of the accepted ones."""
        return [upload.id for upload in uploads if self.add_file_to_upload(upload)]

    async def _upload(self, upload: UploadedFile):
        try:
            content = await asyncio.to_thread(self.processor.extract_content, upload)
            self.update_progress(upload.id, EXTRACTED_PROGRESS)

            document_id = await asyncio.to_thread(self.processor.index, upload, content)
            self.update_progress(upload.id, 100)
        except asyncio.CancelledError:
            # Raised when the queue's deadline expires or the loop shuts down
            self._release_entry(upload.id, exclude=upload)
            self.notifier.error(f"Upload of {upload.name} timed out or was cancelled", upload_id=upload.id)
            raise
        except Exception as e:
            self._release_entry(upload.id, exclude=upload)
            self.notifier.error(f"Failed to upload {upload.name}: {e}", upload_id=upload.id)
            logger.debug(f"Upload {upload.name} failed with status {status_for(e).value}")
            raise

        self.notifier.success(f"Uploaded {upload.name}", upload_id=upload.id)
        logger.info(f"Upload complete: {upload.name} -> {document_id[:8]}")

    def update_progress(self, upload_id: str, progress: int) -> bool:
        return self.ledger.update_progress(upload_id, progress)

    def cancel_pending(self, upload_id: str) -> bool:
        """
        Cancel an upload that has not started yet.

        Returns:
            bool: True if a pending upload was removed
        """
        removed = self.queue.discard_pending(lambda item: item.payload.id == upload_id)
        if not removed:
            return False

        self._release_entry(upload_id)
        self.notifier.info(f"Cancelled upload {removed[0].payload.name}", upload_id=upload_id)
        return True

    def _release_entry(self, upload_id: str, exclude: Optional[UploadedFile] = None):
        """
        Discard a ledger entry unless another queued upload still shares its id.

        Uploads are keyed by file name, so a running duplicate keeps the
        entry alive until it reports its own progress.
        """
        in_flight = self.queue.running_items() + self.queue.pending_items()
        if any(item.payload.id == upload_id and item.payload is not exclude for item in in_flight):
            logger.debug(f"Keeping ledger entry {upload_id}, a duplicate upload is still queued")
            return
        self.ledger.discard(upload_id)

    def reset_state(self):
        self.ledger.reset()

    def clear_completed(self):
        self.ledger.clear_completed()

    def status(self) -> Dict[str, Any]:
        state = self.ledger.snapshot()
        state['queue'] = self.queue.get_progress()
        return state

    async def wait_until_idle(self):
        await self.queue.wait_idle()

    def shutdown(self) -> int:
        """Stop accepting uploads; returns the number of pending uploads dropped."""
        dropped = self.queue.shutdown()
        for item in dropped:
            self._release_entry(item.payload.id)
        return len(dropped)
