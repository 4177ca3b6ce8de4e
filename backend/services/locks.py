import threading
from contextlib import contextmanager


class KeyedLocks:
    """
    Process-local mutual exclusion keyed by an id.

    - One lock per key while anyone holds or waits on it.
    - Entries are dropped when the last user releases, so the map does not grow.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks = {}

    @contextmanager
    def hold(self, key):
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1
        lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._locks.pop(key, None)

    def __len__(self):
        with self._guard:
            return len(self._locks)


# Global, process-local registry for project mutations
PROJECT_LOCKS = KeyedLocks()
