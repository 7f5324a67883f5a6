from dataclasses import dataclass

@dataclass
class SearchResult:
    document_id: str
    name: str
    extension: str
    mime_type: str
    uploaded_at: str
    distance: float
    score: float
    snippet: str

    def __str__(self) -> str:
        """Human-readable string representation of the SearchResult."""
        return (f"File: {self.name} ({self.extension})\n"
                f"Id: {self.document_id}\n"
                f"Score: {self.score:.3f}\n"
                f"Uploaded At: {self.uploaded_at}\n"
                f"Snippet: {self.snippet}")

    def __repr__(self) -> str:
        """Developer-friendly string representation of the SearchResult."""
        return (f"SearchResult(document_id='{self.document_id[:8]}...', "
                f"name='{self.name}', "
                f"score={self.score:.3f}, "
                f"distance={self.distance:.3f})")
