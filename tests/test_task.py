"""Tests for the TaskService."""

import asyncio
from typing import Any

import pytest

from farm_sync.task import TaskService


@pytest.fixture
def task_service() -> TaskService:
    """Fixture for creating a TaskService instance."""
    return TaskService()


async def test_create_and_complete_task(task_service: TaskService) -> None:
    """Test creating and completing a task."""

    async def test_task() -> Any:
        await asyncio.sleep(0.01)
        return "done"

    task = task_service.create_task(test_task(), name="test")
    assert task.get_name() == "test"
    assert task_service.get_num_active_tasks() == 1

    result = await task
    assert result == "done"
    await asyncio.sleep(0)
    assert task_service.get_num_active_tasks() == 0


async def test_block_till_done(task_service: TaskService) -> None:
    """Test blocking until all tasks are done."""

    async def test_task() -> Any:
        await asyncio.sleep(0.01)
        return "done"

    tasks = [task_service.create_task(test_task()) for _ in range(3)]
    assert task_service.get_num_active_tasks() == 3

    await task_service.block_till_done()

    assert task_service.get_num_active_tasks() == 0
    for task in tasks:
        assert task.done()
        assert task.result() == "done"


async def test_block_till_done_without_tasks(task_service: TaskService) -> None:
    """Test blocking returns immediately when nothing is scheduled."""
    await task_service.block_till_done()
    assert task_service.get_num_active_tasks() == 0


async def test_task_failure(
    task_service: TaskService, caplog: pytest.LogCaptureFixture
) -> None:
    """Test a failing task is logged, removed and does not fail block_till_done."""

    async def failing_task() -> Any:
        await asyncio.sleep(0.01)
        raise ValueError("Test error")

    task = task_service.create_task(failing_task(), name="failing")

    await task_service.block_till_done()

    assert "Task failing failed: Test error" in caplog.text
    assert task_service.get_num_active_tasks() == 0
    with pytest.raises(ValueError, match="Test error"):
        task.result()


async def test_task_cancellation(task_service: TaskService) -> None:
    """Test task cancellation."""

    async def cancellable_task() -> Any:
        await asyncio.sleep(10)
        return "should not get here"

    task = task_service.create_task(cancellable_task())
    task.cancel()

    # Give the event loop a chance to process the cancellation
    await asyncio.sleep(0.01)

    assert task_service.get_num_active_tasks() == 0
    assert task.cancelled()


async def test_close_cancels_tasks(task_service: TaskService) -> None:
    """Test closing the service cancels outstanding tasks."""

    async def cancellable_task() -> Any:
        await asyncio.sleep(10)

    tasks = [task_service.create_task(cancellable_task()) for _ in range(2)]

    await task_service.close()

    assert all(task.cancelled() for task in tasks)
    assert task_service.get_num_active_tasks() == 0
