import logging

from typing import List, Optional

import config
from models.searchresult import SearchResult
from utils.math_utils import normalize_cosine_distance

logger = logging.getLogger(__name__)


class Searcher:
    """Semantic search over uploaded documents."""

    def __init__(self, indexer, snippet_length: int = config.SNIPPET_LENGTH):
        # Shares collections with the indexer so results include fresh uploads
        self.content_collection = indexer.content_collection
        self.snippet_length = snippet_length

    def search(self, query: str, limit: int = config.DEFAULT_SEARCH_LIMIT,
               extensions: Optional[List[str]] = None) -> List[SearchResult]:
        if not query.strip():
            return []

        total = self.content_collection.count()
        if total == 0:
            return []

        where = {"extension": {"$in": extensions}} if extensions else None
        results = self.content_collection.query(
            query_texts=[query],
            n_results=min(limit, total),
            where=where
        )
        return self.__to_results(results)

    def __to_results(self, results) -> List[SearchResult]:
        if not results['ids'] or not results['ids'][0]:
            return []

        distances = results.get('distances')
        documents = results.get('documents')
        hits = []
        for i, _ in enumerate(results['ids'][0]):
            metadata = results['metadatas'][0][i]
            distance = distances[0][i] if distances else 0.0
            text = documents[0][i] if documents else ""

            hits.append(SearchResult(
                document_id=metadata['document_id'],
                name=metadata['name'],
                extension=metadata.get('extension', ''),
                mime_type=metadata.get('mime_type', ''),
                uploaded_at=metadata.get('uploaded_at', ''),
                distance=distance,
                score=normalize_cosine_distance(min(max(distance, 0.0), 2.0)),
                snippet=(text or "")[:self.snippet_length]
            ))

        return sorted(hits, key=lambda hit: hit.score, reverse=True)
