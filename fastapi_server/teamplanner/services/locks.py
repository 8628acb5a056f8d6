"""
Per-team critical sections.

Process-local only: running several uvicorn workers against one database
gives no cross-process serialization.
"""
from contextlib import contextmanager
from threading import Lock, RLock
from typing import Iterator


class TeamLocks:
    """One exclusive lock per team id, created on first use."""

    def __init__(self):
        self._guard = Lock()
        self._locks: dict[str, RLock] = {}

    def _lock_for(self, team_id: str) -> RLock:
        with self._guard:
            lock = self._locks.get(team_id)
            if lock is None:
                lock = self._locks[team_id] = RLock()
            return lock

    @contextmanager
    def hold(self, team_id: str) -> Iterator[None]:
        """
        Serialize mutations of one team.

        Usage:
            with locks.hold(team_id):
                ...  # check code, mutate, commit, publish
        """
        lock = self._lock_for(team_id)
        lock.acquire()
        try:
            yield
        finally:
            lock.release()

    def __len__(self) -> int:
        return len(self._locks)
