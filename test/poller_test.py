"""
RetryPoller 테스트

테스트 항목:
1. run_once: 멈춘 오퍼레이션 복구 후 due 오퍼레이션 처리
2. start/stop: 폴링 루프 시작 및 graceful shutdown

실행: python -m pytest test/poller_test.py -v
"""

import asyncio
from datetime import timedelta

import pytest
import pytest_asyncio

from retry.base import ExecutorRegistry
from retry.manager import RetryManager
from retry.model import OperationStatus, PollerConfig, RetryConfig
from retry.poller import RetryPoller

from conftest import START_TIME, make_operation


@pytest_asyncio.fixture
async def calls():
    return []


@pytest_asyncio.fixture
async def manager(store, clock, calls):
    registry = ExecutorRegistry()

    async def refresh(subject_id, payload):
        calls.append(subject_id)
        return {"refreshed": subject_id}

    registry.register("status_refresh", refresh)
    return RetryManager(store, registry, RetryConfig(max_retries=3), clock=clock)


class TestRunOnce:
    """폴링 1회 테스트"""

    @pytest.mark.asyncio
    async def test_processes_due_operations(self, manager, store, calls):
        await store.insert(make_operation(id="due", type="status_refresh", subject_id="order-1"))
        await store.insert(make_operation(
            id="later", type="status_refresh", subject_id="order-2",
            next_retry_at=START_TIME + timedelta(hours=1),
        ))
        poller = RetryPoller(manager, PollerConfig(batch_size=10))

        result = await poller.run_once()

        assert result.processed == 1
        assert calls == ["order-1"]
        assert poller.cycle_count == 1
        assert poller.last_result == result

    @pytest.mark.asyncio
    async def test_batch_size(self, manager, store, calls):
        for i in range(3):
            await store.insert(make_operation(id=f"op-{i}", type="status_refresh", subject_id=f"order-{i}"))
        poller = RetryPoller(manager, PollerConfig(batch_size=2))

        assert (await poller.run_once()).processed == 2
        assert (await poller.run_once()).processed == 1
        assert poller.cycle_count == 2

    @pytest.mark.asyncio
    async def test_recovers_stuck_before_processing(self, manager, store, clock, calls):
        """멈춘 오퍼레이션은 pending으로 복구된 뒤 백오프가 지나면 처리됨"""
        await store.insert(make_operation(
            id="stuck", type="status_refresh", status=OperationStatus.PROCESSING, attempts=1,
            next_retry_at=None, last_attempt_at=START_TIME - timedelta(hours=1),
        ))
        poller = RetryPoller(manager, PollerConfig(stuck_after_seconds=600))

        result = await poller.run_once()
        assert result.processed == 0
        assert (await manager.get_operation("stuck")).status == OperationStatus.PENDING

        clock.advance(minutes=1)
        result = await poller.run_once()
        assert result.processed == 1
        operation = await manager.get_operation("stuck")
        assert operation.status == OperationStatus.COMPLETED
        assert operation.attempts == 2


class TestStartStop:
    """폴링 루프 테스트"""

    @pytest.mark.asyncio
    async def test_start_and_stop(self, manager, store, calls):
        await store.insert(make_operation(id="due", type="status_refresh"))
        poller = RetryPoller(manager, PollerConfig(poll_interval_seconds=0.05))

        task = asyncio.create_task(poller.start())
        await asyncio.sleep(0.2)
        assert poller.is_running
        assert poller.cycle_count >= 2

        await poller.stop()
        await asyncio.wait_for(task, timeout=1)

        assert not poller.is_running
        assert calls == ["order-1"]

    @pytest.mark.asyncio
    async def test_stop_without_start(self, manager):
        poller = RetryPoller(manager)
        await poller.stop()
        assert not poller.is_running

    @pytest.mark.asyncio
    async def test_cycle_error_does_not_stop_loop(self, manager, monkeypatch):
        """폴링 중 예외가 나도 다음 사이클 계속"""
        poller = RetryPoller(manager, PollerConfig(poll_interval_seconds=0.01))
        attempts = []

        async def broken_batch(limit=None):
            attempts.append(limit)
            raise RuntimeError("database is locked")

        monkeypatch.setattr(manager, "process_pending_batch", broken_batch)

        task = asyncio.create_task(poller.start())
        await asyncio.sleep(0.1)
        await poller.stop()
        await asyncio.wait_for(task, timeout=1)

        assert len(attempts) >= 2
