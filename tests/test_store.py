from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import pytest

from stylizer.errors import JobNotFoundError, JobStateError
from stylizer.jobs.models import JobStatus
from stylizer.jobs.store import JobStore


def test_create_assigns_increasing_ids_and_pending_status(store):
    first = store.create("/tmp/a.jpg", "a.jpg")
    second = store.create("/tmp/b.jpg", "b.jpg")

    assert (first.id, second.id) == (1, 2)
    assert first.status == JobStatus.PENDING
    assert first.processed_path is None
    assert first.error is None
    assert store.get(first.id) == first


def test_create_keeps_explicit_timestamp(store):
    created_at = datetime(2024, 5, 1, 12, 0, 0)
    job = store.create("/tmp/a.jpg", "a.jpg", created_at=created_at)
    assert store.get(job.id).created_at == created_at


def test_get_returns_snapshot(store):
    job = store.create("/tmp/a.jpg", "a.jpg")
    snapshot = store.get(job.id)
    snapshot.status = JobStatus.COMPLETED

    assert store.get(job.id).status == JobStatus.PENDING


def test_get_unknown_returns_none(store):
    assert store.get(42) is None


def test_update_merges_fields(store):
    job = store.create("/tmp/a.jpg", "a.jpg")
    updated = store.update(job.id, status=JobStatus.COMPLETED, processed_path="/tmp/out.jpg")

    assert updated.status == JobStatus.COMPLETED
    assert updated.processed_path == "/tmp/out.jpg"
    assert updated.original_file_name == "a.jpg"
    assert store.get(job.id) == updated


def test_update_accepts_status_strings(store):
    job = store.create("/tmp/a.jpg", "a.jpg")
    assert store.update(job.id, status="error", error="boom").status == JobStatus.ERROR


def test_update_unknown_id_raises(store):
    with pytest.raises(JobNotFoundError):
        store.update(99, status=JobStatus.ERROR)


@pytest.mark.parametrize("terminal", [JobStatus.COMPLETED, JobStatus.ERROR])
@pytest.mark.parametrize("target", list(JobStatus))
def test_terminal_status_is_absorbing(store, terminal, target):
    job = store.create("/tmp/a.jpg", "a.jpg")
    store.update(job.id, status=terminal)

    with pytest.raises(JobStateError):
        store.update(job.id, status=target)
    assert store.get(job.id).status == terminal


def test_update_rejects_unknown_and_immutable_fields(store):
    job = store.create("/tmp/a.jpg", "a.jpg")
    with pytest.raises(ValueError):
        store.update(job.id, colour="blue")
    with pytest.raises(ValueError):
        store.update(job.id, original_path="/tmp/other.jpg")


def test_delete_and_ids_are_not_reused(store):
    job = store.create("/tmp/a.jpg", "a.jpg")

    assert store.delete(job.id) is True
    assert store.delete(job.id) is False
    assert store.get(job.id) is None
    assert store.create("/tmp/b.jpg", "b.jpg").id == job.id + 1


def test_list_and_counts(store):
    a = store.create("/tmp/a.jpg", "a.jpg")
    b = store.create("/tmp/b.jpg", "b.jpg")
    store.create("/tmp/c.jpg", "c.jpg")
    store.update(a.id, status=JobStatus.COMPLETED)
    store.update(b.id, status=JobStatus.ERROR, error="x")

    assert [j.id for j in store.list()] == [1, 2, 3]
    assert [j.id for j in store.list(JobStatus.ERROR)] == [b.id]
    assert store.counts() == {"pending": 1, "completed": 1, "error": 1}


def test_concurrent_creates_get_unique_ids():
    store = JobStore()
    with ThreadPoolExecutor(max_workers=8) as pool:
        jobs = list(pool.map(lambda i: store.create(f"/tmp/{i}.jpg", f"{i}.jpg"), range(200)))

    ids = [j.id for j in jobs]
    assert len(set(ids)) == 200
    assert sorted(ids) == list(range(1, 201))


def test_only_one_concurrent_terminal_update_wins():
    store = JobStore()
    job = store.create("/tmp/a.jpg", "a.jpg")

    def finish(i):
        try:
            store.update(job.id, status=JobStatus.ERROR, error=f"attempt {i}")
            return True
        except JobStateError:
            return False

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(finish, range(50)))

    assert results.count(True) == 1
    winner = results.index(True)
    assert store.get(job.id).error == f"attempt {winner}"
