"""
Unit tests for Searcher and the similarity normalisation it relies on.
"""

import unittest
from unittest.mock import Mock

# Add parent directory to path for imports
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from db.searcher import Searcher
from utils.math_utils import normalize_cosine_distance


def metadata(name: str) -> dict:
    return {
        "document_id": f"id-{name}",
        "name": name,
        "extension": ".txt",
        "mime_type": "text/plain",
        "uploaded_at": "2024-01-01T00:00:00",
    }


class TestSearcher(unittest.TestCase):
    """Test cases for Searcher functionality."""

    def setUp(self):
        self.collection = Mock()
        self.collection.count.return_value = 2
        indexer = Mock(content_collection=self.collection)
        self.searcher = Searcher(indexer, snippet_length=5)

    def test_results_sorted_by_score(self):
        """Ranking - Closer documents come first and snippets are trimmed"""
        self.collection.query.return_value = {
            "ids": [["content-far", "content-near"]],
            "metadatas": [[metadata("far.txt"), metadata("near.txt")]],
            "distances": [[1.2, 0.1]],
            "documents": [["far away text", "nearby text"]],
        }

        results = self.searcher.search("nearby", limit=5)

        self.assertEqual([r.name for r in results], ["near.txt", "far.txt"])
        self.assertGreater(results[0].score, results[1].score)
        self.assertEqual(results[0].snippet, "nearb")
        self.collection.query.assert_called_once_with(query_texts=["nearby"], n_results=2, where=None)

    def test_extension_filter(self):
        """Filtering - Extension filters are passed to the collection query"""
        self.collection.query.return_value = {"ids": [[]], "metadatas": [[]], "distances": [[]], "documents": [[]]}
        self.assertEqual(self.searcher.search("query", limit=1, extensions=[".md"]), [])
        self.collection.query.assert_called_once_with(
            query_texts=["query"], n_results=1, where={"extension": {"$in": [".md"]}}
        )

    def test_empty_collection_or_query(self):
        """Empty Inputs - Blank queries and empty collections return no results"""
        self.assertEqual(self.searcher.search("   "), [])
        self.collection.count.return_value = 0
        self.assertEqual(self.searcher.search("query"), [])
        self.collection.query.assert_not_called()


class TestNormalizeCosineDistance(unittest.TestCase):
    """Test cases for the distance to similarity mapping."""

    def test_monotonic(self):
        """Monotonic - Larger distances never score higher"""
        scores = [normalize_cosine_distance(d / 10) for d in range(0, 21)]
        self.assertEqual(scores, sorted(scores, reverse=True))
        self.assertGreater(scores[0], 0.99)
        self.assertLess(scores[-1], 0.01)

    def test_out_of_range(self):
        """Range Check - Distances outside [0, 2] are rejected"""
        with self.assertRaises(ValueError):
            normalize_cosine_distance(-0.1)
        with self.assertRaises(ValueError):
            normalize_cosine_distance(2.5)


if __name__ == '__main__':
    unittest.main(verbosity=2)
