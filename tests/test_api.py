"""
API tests for the upload backend.

Runs the FastAPI app in-process with injected collaborators, so no
vector store or embedding model is needed.
"""

import time
import unittest
from unittest.mock import Mock, patch

# Add parent directory to path for imports
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient

import config
from main import create_app
from models.searchresult import SearchResult
from processing.completion_ledger import CompletionLedger
from processing.file_processor import FileProcessor
from processing.queue_manager import BoundedTaskQueue
from processing.upload_manager import UploadManager
from utils.notifier import Notifier


class TestUploadApi(unittest.TestCase):
    """Test cases for the HTTP endpoints."""

    def setUp(self):
        self.indexer = Mock()
        self.indexer.upload.side_effect = lambda metadata, content: metadata.document_id
        self.searcher = Mock()
        self.manager = UploadManager(
            queue=BoundedTaskQueue(concurrency_limit=2),
            ledger=CompletionLedger(),
            processor=FileProcessor(self.indexer),
            notifier=Notifier()
        )
        self.client = TestClient(create_app(upload_manager=self.manager, searcher=self.searcher))
        self.client.__enter__()

    def tearDown(self):
        self.client.__exit__(None, None, None)

    def wait_for_completed(self, count: int, timeout: float = 5.0) -> dict:
        """Poll the upload list until `count` uploads have completed."""
        deadline = time.time() + timeout
        while True:
            body = self.client.get("/uploads").json()
            if len(body["completed"]) >= count or time.time() > deadline:
                return body
            time.sleep(0.05)

    def test_health(self):
        """Health Check - Services report as available"""
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["services"], {"upload_queue": True, "searcher": True})

    def test_upload_files(self):
        """Upload Files - Uploaded files are queued, processed and listed as completed"""
        response = self.client.post("/uploads", files=[
            ("files", ("a.txt", b"alpha", "text/plain")),
            ("files", ("b.md", b"# beta", "text/markdown")),
        ])
        self.assertEqual(response.status_code, 202)
        self.assertEqual(response.json(), {"accepted": ["a.txt", "b.md"], "rejected": []})

        body = self.wait_for_completed(2)
        self.assertEqual(body["active"], [])
        self.assertEqual(sorted(e["id"] for e in body["completed"]), ["a.txt", "b.md"])
        self.assertTrue(all(e["progress"] == 100 for e in body["completed"]))
        self.assertEqual(body["queue"]["concurrencyLimit"], 2)
        self.assertEqual(body["queue"]["totalProcessed"], 2)

        notifications = self.client.get("/notifications").json()["notifications"]
        self.assertEqual([n["level"] for n in notifications], ["success", "success"])

    def test_upload_requires_files(self):
        """Upload Validation - A request without files is rejected"""
        response = self.client.post("/uploads")
        self.assertIn(response.status_code, (400, 422))

    def test_failed_upload_reports_error(self):
        """Failed Upload - Failures surface as error notifications"""
        self.indexer.upload.side_effect = RuntimeError("store offline")
        self.client.post("/uploads", files=[("files", ("a.txt", b"alpha", "text/plain"))])

        deadline = time.time() + 5.0
        while self.manager.queue.get_progress()["total_failed"] < 1 and time.time() < deadline:
            time.sleep(0.05)

        body = self.client.get("/uploads").json()
        self.assertEqual(body["active"], [])
        self.assertEqual(body["completed"], [])
        self.assertEqual(body["queue"]["totalFailed"], 1)

        notifications = self.client.get("/notifications").json()["notifications"]
        self.assertEqual(notifications[-1]["level"], "error")
        self.assertEqual(notifications[-1]["uploadId"], "a.txt")

    def test_clear_completed_uploads(self):
        """Clear Completed - Completed uploads can be cleared by the client"""
        self.client.post("/uploads", files=[("files", ("a.txt", b"alpha", "text/plain"))])
        self.wait_for_completed(1)

        response = self.client.delete("/uploads/completed")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["completed"], [])

    def test_reset_active_uploads(self):
        """Reset Active - Active uploads are cleared while completed ones remain"""
        self.manager.ledger.track("stale", "stale.txt")
        response = self.client.delete("/uploads/active")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["active"], [])

    def test_cancel_unknown_pending_upload(self):
        """Cancel Pending - Cancelling an upload that is not pending returns 404"""
        response = self.client.delete("/uploads/pending/missing.txt")
        self.assertEqual(response.status_code, 404)

    def test_search(self):
        """Search - Results from the searcher are returned in API format"""
        self.searcher.search.return_value = [
            SearchResult(document_id="abc123", name="a.txt", extension=".txt", mime_type="text/plain",
                         uploaded_at="2024-01-01T00:00:00", distance=0.2, score=0.99, snippet="alpha")
        ]
        response = self.client.post("/search", json={"query": "alpha", "limit": 3})
        self.assertEqual(response.status_code, 200)

        body = response.json()
        self.assertEqual(body["totalCount"], 1)
        self.assertEqual(body["results"][0]["fileName"], "a.txt")
        self.assertEqual(body["results"][0]["documentId"], "abc123")
        self.searcher.search.assert_called_once_with("alpha", 3, None)

    def test_search_rejects_bad_limit(self):
        """Search Validation - Non-positive limits are rejected"""
        response = self.client.post("/search", json={"query": "alpha", "limit": 0})
        self.assertEqual(response.status_code, 400)

    def test_status(self):
        """Status - Queue statistics and the indexed document count are reported"""
        self.indexer.count.return_value = 3
        body = self.client.get("/status").json()
        self.assertEqual(body["status"], "running")
        self.assertEqual(body["queue"]["concurrency_limit"], 2)
        self.assertEqual(body["documents"], 3)

    def test_oversized_upload_is_rejected(self):
        """Upload Validation - Files over their size limit are rejected before queueing"""
        with patch.dict(config.SIZE_LIMITS, {'text': 10}):
            response = self.client.post("/uploads", files=[
                ("files", ("big.txt", b"x" * 64, "text/plain")),
            ])

        self.assertEqual(response.status_code, 413)
        self.assertIsNone(self.manager.ledger.get("big.txt"))
        self.assertEqual(self.manager.queue.get_progress()["total_added"], 0)
        self.indexer.upload.assert_not_called()

    def test_delete_document(self):
        """Delete Document - Indexed documents can be removed by id"""
        self.indexer.delete.return_value = True
        response = self.client.delete("/documents/abc123")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "deleted", "documentId": "abc123"})
        self.indexer.delete.assert_called_once_with("abc123")

    def test_delete_unknown_document(self):
        """Delete Document - Removing a document that is not indexed returns 404"""
        self.indexer.delete.return_value = False
        response = self.client.delete("/documents/missing")
        self.assertEqual(response.status_code, 404)


if __name__ == '__main__':
    unittest.main(verbosity=2)
