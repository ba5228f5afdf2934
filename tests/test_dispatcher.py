import asyncio

import pytest

from stylizer.jobs.in_process import INTERRUPTED_MESSAGE, InProcessDispatcher
from stylizer.jobs.models import JobStatus

pytestmark = pytest.mark.anyio


async def test_launch_runs_worker_in_background(store):
    started = asyncio.Event()
    release = asyncio.Event()

    async def worker(job_id):
        started.set()
        await release.wait()
        return store.update(job_id, status=JobStatus.COMPLETED, processed_path="/tmp/out.png")

    dispatcher = InProcessDispatcher(store, worker)
    await dispatcher.start()
    job = store.create("/tmp/in.png", "in.png")

    dispatcher.launch(job)
    await started.wait()
    assert dispatcher.in_flight == 1
    assert store.get(job.id).status == JobStatus.PENDING

    release.set()
    await dispatcher.wait_idle()
    assert dispatcher.in_flight == 0
    assert store.get(job.id).status == JobStatus.COMPLETED


async def test_crashed_task_marks_job_as_error(store):
    async def worker(job_id):
        raise RuntimeError("worker exploded")

    dispatcher = InProcessDispatcher(store, worker)
    await dispatcher.start()
    job = store.create("/tmp/in.png", "in.png")

    dispatcher.launch(job)
    await dispatcher.wait_idle()

    stored = store.get(job.id)
    assert stored.status == JobStatus.ERROR
    assert stored.error == INTERRUPTED_MESSAGE


async def test_crash_after_terminal_update_keeps_recorded_outcome(store):
    async def worker(job_id):
        store.update(job_id, status=JobStatus.ERROR, error="provider said no")
        raise RuntimeError("late failure")

    dispatcher = InProcessDispatcher(store, worker)
    await dispatcher.start()
    job = store.create("/tmp/in.png", "in.png")

    dispatcher.launch(job)
    await dispatcher.wait_idle()

    assert store.get(job.id).error == "provider said no"


async def test_stop_cancels_in_flight_jobs(store):
    async def worker(job_id):
        await asyncio.sleep(3600)

    dispatcher = InProcessDispatcher(store, worker)
    await dispatcher.start()
    job = store.create("/tmp/in.png", "in.png")
    dispatcher.launch(job)
    await asyncio.sleep(0)

    await dispatcher.stop()
    await asyncio.sleep(0)

    assert dispatcher.running is False
    assert store.get(job.id).status == JobStatus.ERROR


async def test_launch_requires_running_dispatcher(store):
    async def worker(job_id):
        return store.get(job_id)

    dispatcher = InProcessDispatcher(store, worker)
    with pytest.raises(RuntimeError):
        dispatcher.launch(store.create("/tmp/in.png", "in.png"))


async def test_jobs_finish_independently(store):
    gates = {}

    async def worker(job_id):
        await gates[job_id].wait()
        return store.update(job_id, status=JobStatus.COMPLETED)

    dispatcher = InProcessDispatcher(store, worker)
    await dispatcher.start()
    first = store.create("/tmp/1.png", "1.png")
    second = store.create("/tmp/2.png", "2.png")
    gates[first.id] = asyncio.Event()
    gates[second.id] = asyncio.Event()
    dispatcher.launch(first)
    dispatcher.launch(second)

    gates[second.id].set()
    for _ in range(5):
        await asyncio.sleep(0)
    assert store.get(second.id).status == JobStatus.COMPLETED
    assert store.get(first.id).status == JobStatus.PENDING

    gates[first.id].set()
    await dispatcher.wait_idle()
    assert store.get(first.id).status == JobStatus.COMPLETED
