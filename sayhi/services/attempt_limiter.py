import logging
from enum import Enum

from sayhi.infrastructure.data.attempt_store import AttemptStore

log = logging.getLogger(__name__)


class LimiterState(Enum):
    CLEAR = "clear"
    WARNED = "warned"
    BLOCKED = "blocked"


class AttemptLimiter:
    """
    Consecutive-failure lockout per username.

    CLEAR (0) -> WARNED (1..max-1) -> BLOCKED (>= max).
    A blocked user's next attempt is refused and the record is dropped, so the
    lockout costs one attempt per window rather than banning the user.
    """

    def __init__(self, store: AttemptStore, max_attempts: int = 3):
        self.store = store
        self.max_attempts = max(1, int(max_attempts))

    def count(self, username: str) -> int:
        return max(0, self.store.load(username))

    def state(self, username: str) -> LimiterState:
        n = self.count(username)
        if n >= self.max_attempts:
            return LimiterState.BLOCKED
        if n > 0:
            return LimiterState.WARNED
        return LimiterState.CLEAR

    def is_blocked(self, username: str) -> bool:
        return self.state(username) is LimiterState.BLOCKED

    def record_failure(self, username: str) -> int:
        n = self.store.increment(username)
        log.debug("Failed attempt %d/%d for %s", n, self.max_attempts, username)
        return n

    def record_success(self, username: str) -> None:
        self.store.delete(username)

    def reset(self, username: str) -> None:
        self.store.delete(username)

    def remaining(self, username: str) -> int:
        return max(0, self.max_attempts - self.count(username))
