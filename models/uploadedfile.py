from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

@dataclass
class UploadedFile:
    name: str
    content: bytes
    content_type: Optional[str] = None
    id: Optional[str] = None
    received_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        # Uploads are keyed by file name unless the caller supplies an id
        if self.id is None:
            self.id = self.name

    @property
    def extension(self) -> str:
        return Path(self.name).suffix.lower()

    @property
    def size(self) -> int:
        return len(self.content)

    def __repr__(self) -> str:
        return f"UploadedFile(id='{self.id}', name='{self.name}', size={self.size})"
