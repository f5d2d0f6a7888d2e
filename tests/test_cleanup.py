import asyncio
import logging

import pytest

from azureassistant.cleanup import CleanupQueue


@pytest.mark.asyncio
async def test_queue_runs_detached_and_drains():
    done = []

    async def work():
        await asyncio.sleep(0)
        done.append(1)

    q = CleanupQueue()
    q.schedule(work, "work")
    q.schedule(work, "more work")
    assert done == []
    await q.drain()
    assert done == [1, 1]
    assert len(q) == 0


@pytest.mark.asyncio
async def test_queue_logs_failures(caplog):
    async def broken():
        raise RuntimeError("remote said no")

    q = CleanupQueue()
    with caplog.at_level(logging.WARNING, logger="azureassistant.cleanup"):
        task = q.schedule(broken, "file f_1")
        await q.drain()
    assert task.exception() is None
    assert "file f_1" in caplog.text
    assert "remote said no" in caplog.text
