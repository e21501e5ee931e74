import os

import pytest

from sayhi.infrastructure.data.attempt_store import FileAttemptStore, MemoryAttemptStore
from sayhi.services.attempt_limiter import AttemptLimiter, LimiterState


@pytest.fixture(params=["memory", "file"])
def limiter(request, tmp_path):
    store = MemoryAttemptStore() if request.param == "memory" else FileAttemptStore(str(tmp_path))
    return AttemptLimiter(store, max_attempts=3)


def test_starts_clear(limiter):
    assert limiter.count("alice") == 0
    assert limiter.state("alice") is LimiterState.CLEAR
    assert limiter.remaining("alice") == 3


def test_three_failures_block(limiter):
    assert limiter.record_failure("alice") == 1
    assert limiter.state("alice") is LimiterState.WARNED
    assert limiter.record_failure("alice") == 2
    assert limiter.state("alice") is LimiterState.WARNED
    assert limiter.record_failure("alice") == 3
    assert limiter.state("alice") is LimiterState.BLOCKED
    assert limiter.is_blocked("alice")


def test_success_before_block_resets(limiter):
    limiter.record_failure("alice")
    limiter.record_failure("alice")
    limiter.record_success("alice")
    assert limiter.count("alice") == 0
    assert limiter.state("alice") is LimiterState.CLEAR


def test_reset_after_block_clears(limiter):
    for _ in range(3):
        limiter.record_failure("alice")
    limiter.reset("alice")
    assert limiter.state("alice") is LimiterState.CLEAR


def test_counters_are_per_user(limiter):
    for _ in range(3):
        limiter.record_failure("alice")
    assert limiter.state("bob") is LimiterState.CLEAR


def test_file_store_layout(tmp_path):
    store = FileAttemptStore(str(tmp_path))
    path = tmp_path / "sayhi-attempts-alice"
    assert store.path_for("alice") == str(path)

    assert store.increment("alice") == 1
    assert path.read_text() == "1"
    store.store("alice", 2)
    assert store.load("alice") == 2
    store.delete("alice")
    assert not path.exists()
    # deleting an absent record is not an error
    store.delete("alice")


@pytest.mark.parametrize("content", ["", "abc", "1.5", "\n"])
def test_file_store_unparsable_counts_as_zero(tmp_path, content):
    (tmp_path / "sayhi-attempts-alice").write_text(content)
    store = FileAttemptStore(str(tmp_path))
    assert store.load("alice") == 0
    assert store.increment("alice") == 1


def test_file_store_trims_whitespace(tmp_path):
    (tmp_path / "sayhi-attempts-alice").write_text(" 2\n")
    assert FileAttemptStore(str(tmp_path)).load("alice") == 2


def test_file_store_increment_is_serialized(tmp_path):
    import threading

    store = FileAttemptStore(str(tmp_path))
    workers = [threading.Thread(target=store.increment, args=("alice",)) for _ in range(20)]
    for w in workers:
        w.start()
    for w in workers:
        w.join()
    assert store.load("alice") == 20


def test_memory_store_contains():
    store = MemoryAttemptStore()
    store.increment("alice")
    assert "alice" in store
    store.delete("alice")
    assert "alice" not in store


def test_negative_counter_reads_as_clear():
    store = MemoryAttemptStore()
    store.store("alice", -4)
    assert AttemptLimiter(store).state("alice") is LimiterState.CLEAR


def test_file_store_keys_cannot_escape_directory(tmp_path):
    store = FileAttemptStore(str(tmp_path))
    assert os.path.dirname(store.path_for("../../etc/x")) == str(tmp_path)
