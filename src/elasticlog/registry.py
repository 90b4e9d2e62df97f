"""
In-memory registry of destination indices and their bulk buffers.
"""

import threading
from typing import Dict, List, NamedTuple, Optional


class Destination:
    """Bulk buffer for one index."""

    __slots__ = ("name", "obsolete_at", "lines", "count")

    def __init__(self, name: str, obsolete_at: Optional[float] = None):
        self.name = name
        self.obsolete_at = obsolete_at
        self.lines: List[str] = []
        self.count = 0

    def is_obsolete(self, now: float) -> bool:
        return self.obsolete_at is not None and self.obsolete_at <= now

    def __repr__(self) -> str:
        return f"<Destination {self.name} count={self.count}>"


class DrainedBatch(NamedTuple):
    index: str
    payload: str
    count: int


class IndexRegistry:
    """
    Destinations known to one ElasticLog instance.

    The pending list holds every destination with a non-empty buffer. It
    references Destination objects rather than names, so an entry evicted
    from the registry still gets shipped by the next drain.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._destinations: Dict[str, Destination] = {}
        self._pending: List[Destination] = []

    def resolve(self, name: str) -> Optional[Destination]:
        with self._lock:
            return self._destinations.get(name)

    def create(self, name: str, obsolete_at: Optional[float] = None) -> Destination:
        """Register ``name``, keeping the existing entry if there is one."""
        with self._lock:
            destination = self._destinations.get(name)
            if destination is None:
                destination = Destination(name, obsolete_at)
                self._destinations[name] = destination
            return destination

    def drop(self, name: str) -> None:
        with self._lock:
            self._destinations.pop(name, None)

    def append(self, destination: Destination, lines: str) -> None:
        """Queue one encoded record (action line and document line)."""
        with self._lock:
            destination.lines.append(lines)
            destination.count += 1
            if destination.count == 1:
                self._pending.append(destination)

    def drain(self) -> List[DrainedBatch]:
        """Take every pending buffer and leave them empty."""
        with self._lock:
            pending, self._pending = self._pending, []
            batches = []
            for destination in pending:
                if destination.count == 0:
                    continue
                batches.append(
                    DrainedBatch(
                        destination.name,
                        "".join(destination.lines),
                        destination.count,
                    )
                )
                destination.lines = []
                destination.count = 0
            return batches

    def evict_obsolete(self, now: float) -> List[str]:
        """Forget destinations whose obsolescence time has passed."""
        with self._lock:
            expired = [
                name
                for name, destination in self._destinations.items()
                if destination.is_obsolete(now)
            ]
            for name in expired:
                del self._destinations[name]
            return expired

    def pending_names(self) -> List[str]:
        with self._lock:
            return [d.name for d in self._pending if d.count]

    def pending_count(self) -> int:
        """Number of records waiting for the next drain."""
        with self._lock:
            return sum(d.count for d in self._pending)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._destinations

    def __len__(self) -> int:
        with self._lock:
            return len(self._destinations)
