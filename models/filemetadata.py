from dataclasses import dataclass

@dataclass
class FileMetadata:
    document_id: str
    upload_id: str
    name: str
    extension: str
    size: int
    mime_type: str
    content_hash: str
    uploaded_at: str

    def __str__(self) -> str:
        """Text indexed alongside the content so names and types are searchable."""
        return (f"File: {self.name} ({self.extension})\n"
                f"Type: {self.mime_type}\n"
                f"Size: {self.size} bytes\n"
                f"Uploaded At: {self.uploaded_at}")
