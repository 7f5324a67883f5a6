import os
import logging
import chromadb

from dataclasses import asdict
from typing import Optional
from chromadb.config import Settings
from chromadb.utils.embedding_functions import SentenceTransformerEmbeddingFunction

import config
from models.filemetadata import FileMetadata

logger = logging.getLogger(__name__)

COLLECTION_METADATA = {
    "hnsw:space": "cosine",  # cosine better for text embeddings
    "hnsw:construction_ef": 100,  # size of candidates during indexing (default = 100)
    "hnsw:search_ef": 100,  # size of candidates during searching (default = 100)
    "hnsw:M": 16  # max neighbours in node graph (default = 16)
}


def create_client(db_path: str = config.CHROMA_DB_PATH):
    """Create a persistent ChromaDB client with telemetry disabled."""
    os.makedirs(db_path, exist_ok=True)
    return chromadb.PersistentClient(
        path=db_path,
        settings=Settings(anonymized_telemetry=False)
    )


class DocumentIndexer:
    """Stores uploaded documents in the vector store and hands back their ids."""

    def __init__(self,
            client=None,
            db_path: str = config.CHROMA_DB_PATH,
            metadata_collection_name: str = config.METADATA_COLLECTION_NAME,
            content_collection_name: str = config.CONTENT_COLLECTION_NAME,
            embedding_function=None
        ):
        self.client = client if client is not None else create_client(db_path)
        self.embedding_function = embedding_function or SentenceTransformerEmbeddingFunction(
            model_name=config.EMBEDDING_MODEL
        )

        self.metadata_collection = self.client.get_or_create_collection(
            name=metadata_collection_name,
            embedding_function=self.embedding_function,
            metadata=COLLECTION_METADATA
        )
        self.content_collection = self.client.get_or_create_collection(
            name=content_collection_name,
            embedding_function=self.embedding_function,
            metadata=COLLECTION_METADATA
        )

        logger.info("DocumentIndexer initialized")

    def upload(self, metadata: FileMetadata, content: str) -> str:
        """
        Index a document's metadata and content.

        Blocking; callers on the event loop should run it in a worker thread.
        Re-uploading identical content upserts the same document id.

        Returns:
            str: The document identifier
        """
        document_id = metadata.document_id
        record = asdict(metadata)

        self.metadata_collection.upsert(
            documents=[str(metadata)],
            metadatas=[record],
            ids=[f"meta-{document_id}"]
        )
        self.content_collection.upsert(
            documents=[content],
            metadatas=[record],
            ids=[f"content-{document_id}"]
        )

        logger.debug(f"Indexed document: {metadata.name} ({document_id[:8]})")
        return document_id

    def delete(self, document_id: str) -> bool:
        existing = self.metadata_collection.get(ids=[f"meta-{document_id}"])
        if not existing["ids"]:
            logger.debug(f"Document not in index, skipping deletion: {document_id}")
            return False

        self.metadata_collection.delete(ids=[f"meta-{document_id}"])
        self.content_collection.delete(ids=[f"content-{document_id}"])
        logger.debug(f"Deleted document from index: {document_id}")
        return True

    def count(self) -> int:
        return self.content_collection.count()

    def cleanup(self):
        """Release the client reference."""
        self.metadata_collection = None
        self.content_collection = None
        self.client = None
        logger.debug("DocumentIndexer resources released")
