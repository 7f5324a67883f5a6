from dataclasses import dataclass

@dataclass
class TrackedEntry:
    id: str
    label: str
    progress: int = 0
