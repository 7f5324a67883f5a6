import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

import config
from db.indexer import DocumentIndexer
from db.searcher import Searcher
from models.uploadedfile import UploadedFile
from processing.completion_ledger import CompletionLedger
from processing.file_processor import FileProcessor, size_limit_for
from processing.queue_manager import BoundedTaskQueue
from processing.upload_manager import UploadManager
from utils.logging_utils import configure_logging, thread_safe_print
from utils.notifier import Notifier


# Pydantic models for API
class SearchRequest(BaseModel):
    query: str
    limit: int = config.DEFAULT_SEARCH_LIMIT
    extensions: Optional[List[str]] = None

class SearchHit(BaseModel):
    documentId: str
    fileName: str
    fileType: str
    score: float
    snippet: str
    uploadedAt: str

class SearchResponse(BaseModel):
    results: List[SearchHit]
    totalCount: int
    searchTime: float
    requestId: str

class TrackedUpload(BaseModel):
    id: str
    label: str
    progress: int

class QueueProgress(BaseModel):
    isProcessing: bool
    concurrencyLimit: int
    activeCount: int
    queueSize: int
    totalAdded: int
    totalProcessed: int
    totalFailed: int
    progress: float

class UploadStatus(BaseModel):
    active: List[TrackedUpload]
    completed: List[TrackedUpload]
    queue: QueueProgress

class UploadAccepted(BaseModel):
    accepted: List[str]
    rejected: List[str]


def build_upload_manager(indexer) -> UploadManager:
    """Create the upload stack around an ingestion service."""
    return UploadManager(
        queue=BoundedTaskQueue(
            concurrency_limit=config.UPLOAD_CONCURRENCY_LIMIT,
            action_timeout=config.UPLOAD_ACTION_TIMEOUT
        ),
        ledger=CompletionLedger(),
        processor=FileProcessor(indexer),
        notifier=Notifier()
    )


def create_app(upload_manager: Optional[UploadManager] = None,
               searcher: Optional[Searcher] = None) -> FastAPI:
    """
    Build the API application.

    When no collaborators are supplied, the lifespan creates the
    ChromaDB-backed indexer, searcher and upload manager on startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(config.LOG_LEVEL)
        thread_safe_print("Starting upload backend...")

        indexer = None
        if upload_manager is None:
            indexer = DocumentIndexer()
            app.state.upload_manager = build_upload_manager(indexer)
            app.state.searcher = Searcher(indexer)
        else:
            app.state.upload_manager = upload_manager
            app.state.searcher = searcher

        thread_safe_print(
            f"Upload queue ready (concurrency_limit={app.state.upload_manager.queue.concurrency_limit})"
        )

        yield

        thread_safe_print("Shutting down upload backend...")
        dropped = app.state.upload_manager.shutdown()
        if dropped:
            thread_safe_print(f"Dropped {dropped} pending upload(s)")

        # Let running ingestions settle before the vector store goes away
        try:
            await asyncio.wait_for(app.state.upload_manager.wait_until_idle(), timeout=10.0)
        except asyncio.TimeoutError:
            thread_safe_print("Timed out waiting for running uploads")

        if indexer is not None:
            indexer.cleanup()
        thread_safe_print("Upload backend shutdown complete")

    app = FastAPI(
        title="Upload Ingestion API",
        description="Queues uploaded documents for vector indexing and search",
        version="1.0.0",
        lifespan=lifespan
    )

    # Add CORS middleware for frontend communication
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


def get_upload_manager(request: Request) -> UploadManager:
    manager = getattr(request.app.state, "upload_manager", None)
    if manager is None:
        raise HTTPException(status_code=503, detail="Upload service not initialized")
    return manager


def get_searcher(request: Request) -> Searcher:
    searcher = getattr(request.app.state, "searcher", None)
    if searcher is None:
        raise HTTPException(status_code=503, detail="Search service not initialized")
    return searcher


def to_status(manager: UploadManager) -> UploadStatus:
    state = manager.status()
    queue = state['queue']
    return UploadStatus(
        active=[TrackedUpload(**entry) for entry in state['active']],
        completed=[TrackedUpload(**entry) for entry in state['completed']],
        queue=QueueProgress(
            isProcessing=queue['is_processing'],
            concurrencyLimit=queue['concurrency_limit'],
            activeCount=queue['active_count'],
            queueSize=queue['queue_size'],
            totalAdded=queue['total_added'],
            totalProcessed=queue['total_processed'],
            totalFailed=queue['total_failed'],
            progress=queue['progress_percentage']
        )
    )


async def read_upload(file: UploadFile) -> UploadedFile:
    """
    Read an uploaded file without buffering more than its size limit.

    Raises:
        HTTPException: 400 for a nameless file, 413 when the file is over its limit
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="Uploaded file has no name")

    limit = size_limit_for(Path(file.filename).suffix.lower())
    too_large = HTTPException(status_code=413, detail=f"{file.filename} exceeds the {limit:,} byte limit")
    if file.size is not None and file.size > limit:
        raise too_large

    content = await file.read(limit + 1)
    if len(content) > limit:
        raise too_large

    return UploadedFile(name=file.filename, content=content, content_type=file.content_type)


def register_routes(app: FastAPI):

    @app.post("/uploads", response_model=UploadAccepted, status_code=202)
    async def upload_files(files: List[UploadFile] = File(...),
                           manager: UploadManager = Depends(get_upload_manager)):
        """Queue uploaded files for ingestion"""
        if not files:
            raise HTTPException(status_code=400, detail="No files provided")

        uploads = [await read_upload(file) for file in files]

        accepted = manager.add_files_to_upload(uploads)
        if not accepted:
            raise HTTPException(status_code=503, detail="Upload queue is shut down")

        accepted_ids = set(accepted)
        return UploadAccepted(
            accepted=accepted,
            rejected=[upload.id for upload in uploads if upload.id not in accepted_ids]
        )

    @app.get("/uploads", response_model=UploadStatus)
    async def get_uploads(manager: UploadManager = Depends(get_upload_manager)):
        """Get active and recently completed uploads with queue progress"""
        return to_status(manager)

    @app.delete("/uploads/active", response_model=UploadStatus)
    async def reset_active_uploads(manager: UploadManager = Depends(get_upload_manager)):
        """Clear the active upload list"""
        manager.reset_state()
        return to_status(manager)

    @app.delete("/uploads/completed", response_model=UploadStatus)
    async def clear_completed_uploads(manager: UploadManager = Depends(get_upload_manager)):
        """Clear the recently completed upload list"""
        manager.clear_completed()
        return to_status(manager)

    @app.delete("/uploads/pending/{upload_id}")
    async def cancel_pending_upload(upload_id: str, manager: UploadManager = Depends(get_upload_manager)):
        """Cancel an upload that has not started yet"""
        if not manager.cancel_pending(upload_id):
            raise HTTPException(status_code=404, detail=f"No pending upload with id {upload_id}")
        return {"status": "cancelled", "uploadId": upload_id}

    @app.delete("/documents/{document_id}")
    async def delete_document(document_id: str, manager: UploadManager = Depends(get_upload_manager)):
        """Remove an indexed document from the vector store"""
        if not await asyncio.to_thread(manager.processor.indexer.delete, document_id):
            raise HTTPException(status_code=404, detail=f"No document with id {document_id}")
        return {"status": "deleted", "documentId": document_id}

    @app.get("/notifications")
    async def get_notifications(include_expired: bool = False,
                                manager: UploadManager = Depends(get_upload_manager)):
        """Get recent upload notifications"""
        return {
            "notifications": [n.to_dict() for n in manager.notifier.recent(include_expired=include_expired)]
        }

    @app.post("/search", response_model=SearchResponse)
    async def search_endpoint(request: SearchRequest, searcher: Searcher = Depends(get_searcher)):
        """Search uploaded documents"""
        if request.limit < 1:
            raise HTTPException(status_code=400, detail="limit must be positive")

        start_time = datetime.now()

        # Run search in a worker thread to avoid blocking the event loop
        results = await asyncio.to_thread(
            searcher.search, request.query, request.limit, request.extensions
        )

        search_time = (datetime.now() - start_time).total_seconds()

        return SearchResponse(
            results=[SearchHit(
                documentId=result.document_id,
                fileName=result.name,
                fileType=result.extension,
                score=result.score,
                snippet=result.snippet,
                uploadedAt=result.uploaded_at
            ) for result in results],
            totalCount=len(results),
            searchTime=search_time,
            requestId=f"search-{int(start_time.timestamp())}"
        )

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint"""
        manager = getattr(request.app.state, "upload_manager", None)
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "services": {
                "upload_queue": manager is not None and not manager.queue.is_shutdown(),
                "searcher": getattr(request.app.state, "searcher", None) is not None
            }
        }

    @app.get("/status")
    async def get_status(manager: UploadManager = Depends(get_upload_manager)):
        """Get backend status and upload queue information"""
        return {
            "status": "running",
            "queue": manager.queue.get_progress(),
            "documents": await asyncio.to_thread(manager.processor.indexer.count),
            "timestamp": datetime.now().isoformat()
        }


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())
