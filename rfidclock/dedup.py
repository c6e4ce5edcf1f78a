class DedupWindow:
    """
    Bounded memory of log keys that were already processed on one channel.

    When the window grows past ``max_keys`` it is cleared, except for the keys
    of the tail that was just read. Those are the only entries the next fetch
    can return again, so a clear never replays them. Older keys are gone from
    the channel tail and are not needed any more.
    """

    def __init__(self, max_keys=1000):
        if max_keys < 1:
            raise ValueError("max_keys must be positive")
        self.max_keys = max_keys
        self._keys = set()
        self.clears = 0

    def __contains__(self, key):
        return key in self._keys

    def __len__(self):
        return len(self._keys)

    def mark(self, key):
        self._keys.add(key)

    def trim(self, keep=()):
        """Clear the window if it is over its bound, keeping ``keep``."""
        if len(self._keys) > self.max_keys:
            self._keys = set(keep) & self._keys
            self.clears += 1
