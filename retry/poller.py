"""
RetryPoller: 재시도 오퍼레이션 폴링 루프

poll_interval_seconds마다 RetryManager.process_pending_batch()를 호출하고,
processing 상태로 멈춘 오퍼레이션을 복구합니다.

실행 방법:
    python main.py poller
    fulfillu run
"""

import asyncio
import logging
from datetime import timedelta

from retry.manager import RetryManager
from retry.model import BatchResult, PollerConfig

logger = logging.getLogger(__name__)


class RetryPoller:
    """
    재시도 폴러

    여러 프로세스에서 동시에 실행해도 됩니다 (선점은 저장소의 조건부 갱신으로 보장).
    """

    def __init__(self, manager: RetryManager, config: PollerConfig | None = None):
        self._manager = manager
        self._config = config or PollerConfig()
        self._running = False
        self._stop_event: asyncio.Event | None = None
        self._current_cycle: asyncio.Task | None = None
        self._cycle_count = 0
        self._last_result: BatchResult | None = None

    async def start(self) -> None:
        """폴링 루프 시작 (stop() 호출 시 반환)"""
        if self._running:
            logger.warning("RetryPoller is already running")
            return

        self._running = True
        self._stop_event = asyncio.Event()

        logger.info(
            f"RetryPoller started (poll_interval={self._config.poll_interval_seconds}s, "
            f"batch_size={self._config.batch_size})"
        )

        try:
            await self._main_loop()
        except asyncio.CancelledError:
            logger.info("RetryPoller cancelled")
        finally:
            self._running = False
            logger.info("RetryPoller stopped")

    async def stop(self) -> None:
        """RetryPoller graceful shutdown (진행 중인 사이클은 끝까지 실행)"""
        if not self._running:
            return

        logger.info("Stopping RetryPoller...")
        self._running = False
        if self._stop_event:
            self._stop_event.set()

        if self._current_cycle and not self._current_cycle.done():
            try:
                await asyncio.wait_for(
                    asyncio.shield(self._current_cycle),
                    timeout=self._config.shutdown_timeout_seconds
                )
            except asyncio.TimeoutError:
                logger.warning(
                    f"Shutdown timeout ({self._config.shutdown_timeout_seconds}s), cancelling current cycle"
                )
                self._current_cycle.cancel()

    async def _main_loop(self) -> None:
        """메인 폴링 루프"""
        while self._running:
            self._current_cycle = asyncio.create_task(self.run_once())
            try:
                await self._current_cycle
            except asyncio.CancelledError:
                if not self._running:
                    break
                raise
            except Exception as e:
                logger.error(f"Error in poll cycle: {e}", exc_info=True)

            # 다음 폴링까지 대기 (stop 시 즉시 종료)
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=self._config.poll_interval_seconds
                )
                break
            except asyncio.TimeoutError:
                pass

    async def run_once(self) -> BatchResult:
        """폴링 1회: 멈춘 오퍼레이션 복구 후 due 오퍼레이션 처리"""
        self._cycle_count += 1

        recovered = await self._manager.recover_stuck_operations(
            timedelta(seconds=self._config.stuck_after_seconds)
        )
        if recovered:
            logger.warning(f"Recovered {recovered} stuck operations")

        result = await self._manager.process_pending_batch(self._config.batch_size)
        self._last_result = result
        return result

    @property
    def is_running(self) -> bool:
        """실행 중 여부"""
        return self._running

    @property
    def cycle_count(self) -> int:
        """수행한 폴링 횟수"""
        return self._cycle_count

    @property
    def last_result(self) -> BatchResult | None:
        """마지막 배치 결과"""
        return self._last_result
