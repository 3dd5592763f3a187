import time
from collections import deque
from threading import Lock


class RateLimiter:
    """Sliding-window limit on requests per client address."""

    def __init__(self, max_attempts=5, window=15 * 60, clock=time.monotonic):
        self.max_attempts = max_attempts
        self.window = window
        self.clock = clock
        self._attempts = {}
        self._lock = Lock()

    def __len__(self):
        with self._lock:
            return len(self._attempts)

    def hit(self, client: str) -> bool:
        """Count an attempt; returns False once the client is over the limit."""
        now = self.clock()
        with self._lock:
            self._prune(now)
            attempts = self._attempts.setdefault(client, deque())
            if len(attempts) >= self.max_attempts:
                return False
            attempts.append(now)
            return True

    def _prune(self, now):
        # Clients with no attempts left in the window are forgotten
        for client in list(self._attempts):
            attempts = self._attempts[client]
            while attempts and now - attempts[0] >= self.window:
                attempts.popleft()
            if not attempts:
                del self._attempts[client]

    def reset(self):
        with self._lock:
            self._attempts.clear()
