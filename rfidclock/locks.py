import threading
from contextlib import contextmanager


class KeyedLocks:
    """One ``threading.Lock`` per key, created on demand.

    Locks are never evicted; the key space (worker ids, badge uids) is small
    and bounded by the number of rows in the database.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    def lock_for(self, key):
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, key):
        lock = self.lock_for(key)
        with lock:
            yield
