"""
Progress tracking for uploads.

The ledger partitions tracked entries into two disjoint, ordered
collections: active entries that are still in flight, and completed
entries that reached 100%. An entry moves from active to completed
exactly once, at the moment its progress is observed to reach 100.
"""

import logging
import math
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from models.trackedentry import TrackedEntry

logger = logging.getLogger(__name__)

MIN_PROGRESS = 0
MAX_PROGRESS = 100


class CompletionLedger:
    """
    Tracks per-upload progress and reconciles finished uploads.

    Active entries are keyed by id in insertion order; completed entries
    are kept in the order they finished. Not thread-safe: mutate it from
    the event loop thread only.
    """

    def __init__(self):
        self._active: Dict[str, TrackedEntry] = {}
        self._completed: List[TrackedEntry] = []

    def track(self, entry_id: str, label: str) -> TrackedEntry:
        """
        Start tracking an entry with progress 0.

        Tracking an id that is already active replaces that entry in place
        (fresh label, progress reset to 0, same position). Tracking an id
        that already completed removes the completed record first, so an id
        is never present in both collections.

        Args:
            entry_id: Identifier, unique among active entries
            label: Display name

        Returns:
            TrackedEntry: The newly tracked entry
        """
        entry = TrackedEntry(id=entry_id, label=label, progress=MIN_PROGRESS)

        if entry_id in self._active:
            logger.debug(f"Replacing active entry: {entry_id}")
        else:
            before = len(self._completed)
            self._completed = [e for e in self._completed if e.id != entry_id]
            if len(self._completed) != before:
                logger.debug(f"Re-tracking completed entry: {entry_id}")

        self._active[entry_id] = entry
        return entry

    def update_progress(self, entry_id: str, progress: int) -> bool:
        """
        Set progress for an active entry, completing it at 100.

        Values are clamped into [0, 100]. Unknown ids (including ids that
        already completed) are silently ignored.

        Raises:
            ValueError: progress is NaN or infinite

        Returns:
            bool: True if an active entry was updated
        """
        if isinstance(progress, float) and not math.isfinite(progress):
            raise ValueError(f"progress must be a finite number, got {progress}")

        entry = self._active.get(entry_id)
        if entry is None:
            logger.debug(f"Ignoring progress for unknown entry: {entry_id}")
            return False

        entry.progress = max(MIN_PROGRESS, min(MAX_PROGRESS, int(progress)))

        if entry.progress >= MAX_PROGRESS:
            self._complete(entry_id)
        return True

    def _complete(self, entry_id: str):
        entry = self._active.pop(entry_id)
        self._completed.append(entry)
        logger.debug(f"Entry completed: {entry_id} ({entry.label})")

    def discard(self, entry_id: str) -> Optional[TrackedEntry]:
        """Stop tracking an active entry without completing it."""
        return self._active.pop(entry_id, None)

    def get(self, entry_id: str) -> Optional[TrackedEntry]:
        entry = self._active.get(entry_id)
        if entry is not None:
            return entry
        for entry in self._completed:
            if entry.id == entry_id:
                return entry
        return None

    def reset(self):
        """Clear active entries. Completed entries are kept."""
        self._active.clear()

    def clear_completed(self):
        self._completed.clear()

    @property
    def active(self) -> List[TrackedEntry]:
        return list(self._active.values())

    @property
    def completed(self) -> List[TrackedEntry]:
        return list(self._completed)

    def snapshot(self) -> Dict[str, Any]:
        return {
            'active': [asdict(entry) for entry in self._active.values()],
            'completed': [asdict(entry) for entry in self._completed],
        }
