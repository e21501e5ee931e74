import fcntl
import logging
import os
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict

log = logging.getLogger(__name__)


class AttemptStore(ABC):
    """Persisted per-username failure counters. Unreadable values count as 0."""

    @abstractmethod
    def load(self, key: str) -> int: ...

    @abstractmethod
    def store(self, key: str, value: int) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...

    def increment(self, key: str) -> int:
        value = self.load(key) + 1
        self.store(key, value)
        return value


class MemoryAttemptStore(AttemptStore):
    def __init__(self):
        self._counts: Dict[str, int] = {}
        self._lock = threading.Lock()

    def load(self, key: str) -> int:
        with self._lock:
            return self._counts.get(key, 0)

    def store(self, key: str, value: int) -> None:
        with self._lock:
            self._counts[key] = int(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._counts.pop(key, None)

    def increment(self, key: str) -> int:
        with self._lock:
            value = self._counts.get(key, 0) + 1
            self._counts[key] = value
            return value

    def __contains__(self, key: str) -> bool:
        return key in self._counts


class FileAttemptStore(AttemptStore):
    """
    <directory>/sayhi-attempts-<username> holding one decimal integer.

    increment() runs under an exclusive flock on a sidecar lock file so
    concurrent authentications for the same user cannot lose an update.
    """

    PREFIX = "sayhi-attempts-"

    def __init__(self, directory: str = "/tmp"):
        self.directory = os.path.normpath(directory)

    def path_for(self, key: str) -> str:
        return os.path.join(self.directory, f"{self.PREFIX}{key.replace(os.sep, '_')}")

    def load(self, key: str) -> int:
        try:
            with open(self.path_for(key), "r") as f:
                return int(f.read().strip())
        except (OSError, ValueError):
            return 0

    def store(self, key: str, value: int) -> None:
        try:
            with open(self.path_for(key), "w") as f:
                f.write(str(int(value)))
        except OSError as e:
            log.warning("Could not write attempt counter for %s: %s", key, e)

    def delete(self, key: str) -> None:
        try:
            os.remove(self.path_for(key))
        except FileNotFoundError:
            pass
        except OSError as e:
            log.warning("Could not remove attempt counter for %s: %s", key, e)

    def increment(self, key: str) -> int:
        with self._locked(key):
            return super().increment(key)

    @contextmanager
    def _locked(self, key: str):
        os.makedirs(self.directory, exist_ok=True)
        fd = os.open(f"{self.path_for(key)}.lock", os.O_CREAT | os.O_RDWR, 0o600)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
