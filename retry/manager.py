"""
RetryManager: 재시도 오퍼레이션 상태 머신

오퍼레이션 등록/선점/실행/백오프/종료 처리를 담당합니다.
모든 상태 변경은 OperationStore.update_status()의 조건부 갱신으로 수행하므로
여러 워커 프로세스가 같은 저장소를 동시에 처리해도 한 번의 시도는 한 워커만 실행합니다.

사용 예시:
    manager = RetryManager(store, registry, RetryConfig(max_retries=5))

    operation_id = await manager.schedule_operation(
        OperationType.ORDER_CREATION, order_id, {"idempotency_key": "..."}, immediate=True
    )
    result = await manager.process_pending_batch()
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable
from uuid import uuid4

from pydantic import BaseModel

from retry.backoff import calculate_delay
from retry.base import ExecutorRegistry
from retry.exception import (
    DuplicateOperationError,
    InvalidTransitionError,
    OperationConflictError,
    OperationNotFoundError,
    PermanentExecutionError,
    UnknownOperationTypeError,
)
from retry.model import (
    BatchResult,
    HealthMetric,
    HealthReport,
    HealthStatus,
    OperationStatus,
    OperationType,
    ProcessOutcome,
    RetryableOperation,
    RetryConfig,
    RetryStats,
    type_name,
)
from retry.store import OperationStore

logger = logging.getLogger(__name__)

MAX_RETRIES_EXCEEDED = "Max retries exceeded"

DEFAULT_STATS_WINDOW = timedelta(hours=24)

# 헬스 체크 기준 (지표명 -> (임계값, 초과 시 상태))
CRITICAL_FAILURES_THRESHOLD = 10
OVERDUE_OPERATIONS_THRESHOLD = 5
STUCK_OPERATIONS_THRESHOLD = 3
OVERDUE_AFTER = timedelta(hours=1)
STUCK_AFTER = timedelta(minutes=30)

_HEALTH_SEVERITY = {
    HealthStatus.OK: 0,
    HealthStatus.WARNING: 1,
    HealthStatus.CRITICAL: 2,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_result(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    return result


def _error_message(error: Exception) -> str:
    message = str(error)
    return message if message else type(error).__name__


class RetryManager:
    """재시도 오퍼레이션 관리자"""

    def __init__(
        self,
        store: OperationStore,
        registry: ExecutorRegistry,
        config: RetryConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._store = store
        self._registry = registry
        self._config = config or RetryConfig()
        self._clock = clock or _utcnow

    @property
    def config(self) -> RetryConfig:
        return self._config

    @property
    def registry(self) -> ExecutorRegistry:
        return self._registry

    @property
    def store(self) -> OperationStore:
        return self._store

    def _now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # 등록
    # ------------------------------------------------------------------

    async def schedule_operation(
        self,
        operation_type: OperationType | str,
        subject_id: str,
        payload: dict[str, Any] | None = None,
        immediate: bool = False,
    ) -> str:
        """
        오퍼레이션 등록

        Args:
            operation_type: 오퍼레이션 타입 (레지스트리에 등록된 이름)
            subject_id: 대상 주문 id
            payload: 실행기에 전달할 데이터
            immediate: True면 등록 직후 바로 처리

        Returns:
            생성된 오퍼레이션 id
        """
        now = self._now()
        next_retry_at = now if immediate else now + calculate_delay(1, self._config)
        operation = RetryableOperation(
            id=uuid4().hex,
            type=type_name(operation_type),
            subject_id=subject_id,
            payload=payload or {},
            attempts=0,
            status=OperationStatus.PENDING,
            next_retry_at=next_retry_at,
            created_at=now,
        )
        await self._store.insert(operation)
        logger.info(
            f"Operation scheduled: id={operation.id}, type={operation.type}, "
            f"subject={subject_id}, immediate={immediate}"
        )

        if immediate:
            await self.process_operation(operation.id)

        return operation.id

    # ------------------------------------------------------------------
    # 처리
    # ------------------------------------------------------------------

    async def process_operation(self, operation_id: str) -> bool:
        """
        오퍼레이션 1건 처리

        실행기 예외는 밖으로 전파되지 않고 항상 저장소에 결과가 기록됩니다.
        저장소 자체의 오류(DatabaseError)만 전파됩니다.

        Returns:
            성공(completed/cancelled 포함) 여부
        """
        outcome = await self._process(operation_id)
        return outcome == ProcessOutcome.SUCCEEDED

    async def _process(self, operation_id: str) -> ProcessOutcome:
        try:
            operation = await self._store.get_by_id(operation_id)
        except OperationNotFoundError:
            logger.error(f"Operation not found: id={operation_id}")
            return ProcessOutcome.FAILED

        if operation.status in (OperationStatus.COMPLETED, OperationStatus.CANCELLED):
            logger.debug(f"Operation already {operation.status.value}: id={operation_id}")
            return ProcessOutcome.SUCCEEDED

        if operation.status == OperationStatus.FAILED:
            logger.debug(f"Operation already failed: id={operation_id}")
            return ProcessOutcome.FAILED

        if operation.status == OperationStatus.PROCESSING:
            logger.info(f"Operation is being processed by another worker: id={operation_id}")
            return ProcessOutcome.SKIPPED

        if operation.attempts >= self._config.max_retries:
            return await self._fail_exhausted(operation)

        # 1. 선점 (pending -> processing, attempts 증가)
        now = self._now()
        try:
            claimed = await self._store.update_status(
                operation_id,
                {
                    'status': OperationStatus.PROCESSING,
                    'attempts': operation.attempts + 1,
                    'last_attempt_at': now,
                    'next_retry_at': None,
                },
                expected_status=OperationStatus.PENDING,
                expected_attempts=operation.attempts,
            )
        except OperationConflictError as e:
            logger.info(f"Failed to claim operation: id={operation_id}, actual={e.actual_status}")
            return ProcessOutcome.SKIPPED

        logger.info(
            f"Processing operation: id={operation_id}, type={claimed.type}, "
            f"attempt={claimed.attempts}/{self._config.max_retries}"
        )

        # 2. 실행기 조회
        try:
            executor = self._registry.resolve(claimed.type)
        except UnknownOperationTypeError as e:
            logger.error(f"No executor registered for operation type: id={operation_id}, type={claimed.type}")
            return await self._finish_failed(claimed, e.message)

        # 3. 실행
        try:
            result = await executor(claimed.subject_id, claimed.payload)
        except PermanentExecutionError as e:
            logger.error(f"Operation failed permanently: id={operation_id}, error={e}")
            return await self._finish_failed(claimed, _error_message(e))
        except Exception as e:
            return await self._finish_attempt_failure(claimed, _error_message(e))

        return await self._finish_completed(claimed, result)

    async def _fail_exhausted(self, operation: RetryableOperation) -> ProcessOutcome:
        """시도 횟수를 모두 사용한 pending 오퍼레이션을 failed로 변경"""
        logger.warning(
            f"Max retries exceeded: id={operation.id}, attempts={operation.attempts}"
        )
        try:
            await self._store.update_status(
                operation.id,
                {
                    'status': OperationStatus.FAILED,
                    'last_error': MAX_RETRIES_EXCEEDED,
                    'next_retry_at': None,
                    'failed_at': self._now(),
                },
                expected_status=OperationStatus.PENDING,
                expected_attempts=operation.attempts,
            )
        except OperationConflictError:
            return ProcessOutcome.SKIPPED
        return ProcessOutcome.FAILED

    async def _finish_completed(self, operation: RetryableOperation, result: Any) -> ProcessOutcome:
        try:
            await self._store.update_status(
                operation.id,
                {
                    'status': OperationStatus.COMPLETED,
                    'result': _serialize_result(result),
                    'last_error': None,
                    'completed_at': self._now(),
                },
                expected_status=OperationStatus.PROCESSING,
                expected_attempts=operation.attempts,
            )
        except OperationConflictError as e:
            logger.warning(f"Operation changed while executing: id={operation.id}, actual={e.actual_status}")
            return ProcessOutcome.SKIPPED
        logger.info(f"Operation completed: id={operation.id}, attempts={operation.attempts}")
        return ProcessOutcome.SUCCEEDED

    async def _finish_failed(self, operation: RetryableOperation, error: str) -> ProcessOutcome:
        try:
            await self._store.update_status(
                operation.id,
                {
                    'status': OperationStatus.FAILED,
                    'last_error': error,
                    'next_retry_at': None,
                    'failed_at': self._now(),
                },
                expected_status=OperationStatus.PROCESSING,
                expected_attempts=operation.attempts,
            )
        except OperationConflictError as e:
            logger.warning(f"Operation changed while executing: id={operation.id}, actual={e.actual_status}")
            return ProcessOutcome.SKIPPED
        return ProcessOutcome.FAILED

    async def _finish_attempt_failure(self, operation: RetryableOperation, error: str) -> ProcessOutcome:
        """일시적 실패: 남은 시도가 있으면 pending으로 되돌리고, 없으면 failed"""
        if operation.attempts >= self._config.max_retries:
            logger.error(
                f"Operation failed after {operation.attempts} attempts: id={operation.id}, error={error}"
            )
            return await self._finish_failed(operation, error)

        next_retry_at = self._now() + calculate_delay(operation.attempts + 1, self._config)
        try:
            await self._store.update_status(
                operation.id,
                {
                    'status': OperationStatus.PENDING,
                    'last_error': error,
                    'next_retry_at': next_retry_at,
                },
                expected_status=OperationStatus.PROCESSING,
                expected_attempts=operation.attempts,
            )
        except OperationConflictError as e:
            logger.warning(f"Operation changed while executing: id={operation.id}, actual={e.actual_status}")
            return ProcessOutcome.SKIPPED

        logger.warning(
            f"Operation attempt failed, retry scheduled: id={operation.id}, "
            f"attempt={operation.attempts}/{self._config.max_retries}, "
            f"next_retry_at={next_retry_at.isoformat()}, error={error}"
        )
        return ProcessOutcome.FAILED

    async def process_pending_batch(self, limit: int | None = None) -> BatchResult:
        """
        실행 시각이 된 pending 오퍼레이션 일괄 처리

        next_retry_at 오름차순으로 한 건씩 처리하며, 한 건의 예외가 나머지 처리를 중단시키지 않습니다.
        다른 워커가 먼저 선점한 건은 skipped로 집계합니다.
        """
        due = await self._store.query_due(self._now(), limit)
        result = BatchResult()
        if not due:
            logger.debug("No due operations")
            return result

        logger.info(f"Processing {len(due)} due operations")
        for operation in due:
            try:
                outcome = await self._process(operation.id)
            except Exception as e:
                logger.error(f"Error processing operation {operation.id}: {e}", exc_info=True)
                result.failed += 1
                continue

            if outcome == ProcessOutcome.SUCCEEDED:
                result.processed += 1
            elif outcome == ProcessOutcome.FAILED:
                result.failed += 1
            else:
                result.skipped += 1

        logger.info(
            f"Batch finished: processed={result.processed}, "
            f"failed={result.failed}, skipped={result.skipped}"
        )
        return result

    # ------------------------------------------------------------------
    # 취소
    # ------------------------------------------------------------------

    async def cancel_operation(self, operation_id: str) -> bool:
        """
        pending 오퍼레이션 취소

        Returns:
            취소됨(이미 취소된 경우 포함) 여부, 존재하지 않으면 False

        Raises:
            InvalidTransitionError: processing/completed/failed 상태
        """
        try:
            operation = await self._store.get_by_id(operation_id)
        except OperationNotFoundError:
            logger.warning(f"Cannot cancel, operation not found: id={operation_id}")
            return False

        if operation.status == OperationStatus.CANCELLED:
            return True

        if operation.status != OperationStatus.PENDING:
            raise InvalidTransitionError(
                operation_id, operation.status.value, OperationStatus.CANCELLED.value
            )

        try:
            await self._store.update_status(
                operation_id,
                {
                    'status': OperationStatus.CANCELLED,
                    'next_retry_at': None,
                    'cancelled_at': self._now(),
                },
                expected_status=OperationStatus.PENDING,
            )
        except OperationConflictError as e:
            if e.actual_status == OperationStatus.CANCELLED.value:
                return True
            raise InvalidTransitionError(
                operation_id, e.actual_status, OperationStatus.CANCELLED.value
            ) from e

        logger.info(f"Operation cancelled: id={operation_id}")
        return True

    async def cancel_operations_for_subject(self, subject_id: str) -> int:
        """주문의 pending 오퍼레이션 전체 취소 (processing 건은 제외)"""
        cancelled = await self._store.cancel_pending_for_subject(subject_id, self._now())
        logger.info(f"Cancelled {cancelled} pending operations for subject {subject_id}")
        return cancelled

    # ------------------------------------------------------------------
    # 운영 기능
    # ------------------------------------------------------------------

    async def requeue_failed_operations(
        self,
        operation_type: OperationType | str | None = None,
        max_age: timedelta = timedelta(hours=24),
        delay: timedelta = timedelta(hours=1),
    ) -> list[str]:
        """
        최근 failed 오퍼레이션을 새 pending 오퍼레이션으로 재등록

        원본 failed 레코드는 변경하지 않고, 새 레코드의 retry_of에 원본 id를 기록합니다.
        이미 재등록된 failed 레코드는 다시 재등록하지 않습니다 (retry_of 유니크 인덱스).

        Returns:
            새로 생성된 오퍼레이션 id 목록
        """
        now = self._now()
        candidates = await self._store.query_requeue_candidates(
            now - max_age,
            type_name(operation_type) if operation_type is not None else None,
        )

        requeued = []
        for failed in candidates:
            operation = RetryableOperation(
                id=uuid4().hex,
                type=failed.type,
                subject_id=failed.subject_id,
                payload=failed.payload,
                attempts=0,
                status=OperationStatus.PENDING,
                next_retry_at=now + delay,
                retry_of=failed.id,
                created_at=now,
            )
            try:
                await self._store.insert(operation)
            except DuplicateOperationError:
                logger.info(f"Failed operation already requeued: id={failed.id}")
                continue
            requeued.append(operation.id)
            logger.info(f"Requeued failed operation: {failed.id} -> {operation.id}")

        return requeued

    async def recover_stuck_operations(self, stuck_after: timedelta = STUCK_AFTER) -> int:
        """
        processing 상태로 멈춘 오퍼레이션 복구 (실행 중 워커가 종료된 경우)

        남은 시도가 있으면 백오프 후 pending, 없으면 failed로 변경합니다.

        Returns:
            복구된 오퍼레이션 수
        """
        now = self._now()
        stuck = await self._store.query_stuck(now - stuck_after)
        recovered = 0
        for operation in stuck:
            error = f"Attempt abandoned: no result after {int(stuck_after.total_seconds())}s"
            if operation.attempts >= self._config.max_retries:
                patch = {
                    'status': OperationStatus.FAILED,
                    'last_error': error,
                    'next_retry_at': None,
                    'failed_at': now,
                }
            else:
                patch = {
                    'status': OperationStatus.PENDING,
                    'last_error': error,
                    'next_retry_at': now + calculate_delay(operation.attempts + 1, self._config),
                }
            try:
                await self._store.update_status(
                    operation.id,
                    patch,
                    expected_status=OperationStatus.PROCESSING,
                    expected_attempts=operation.attempts,
                )
            except OperationConflictError:
                continue
            recovered += 1
            logger.warning(
                f"Recovered stuck operation: id={operation.id}, status={patch['status'].value}"
            )
        return recovered

    async def get_operation(self, operation_id: str) -> RetryableOperation:
        """오퍼레이션 조회 (없으면 OperationNotFoundError)"""
        return await self._store.get_by_id(operation_id)

    async def list_operations(
        self,
        status: OperationStatus | None = None,
        subject_id: str | None = None,
        operation_type: OperationType | str | None = None,
        page: int = 1,
        size: int = 20,
    ) -> tuple[list[RetryableOperation], int]:
        """필터 조회, (목록, 전체 건수) 반환"""
        type_filter = type_name(operation_type) if operation_type is not None else None
        items = await self._store.list_operations(
            status=status,
            subject_id=subject_id,
            operation_type=type_filter,
            limit=size,
            offset=(page - 1) * size,
        )
        total = await self._store.count_operations(
            status=status,
            subject_id=subject_id,
            operation_type=type_filter,
        )
        return items, total

    # ------------------------------------------------------------------
    # 통계 / 헬스 체크
    # ------------------------------------------------------------------

    async def get_stats(self, window_start: datetime | None = None) -> RetryStats:
        """window_start 이후 생성된 오퍼레이션의 상태별 집계 (기본: 최근 24시간)"""
        if window_start is None:
            window_start = self._now() - DEFAULT_STATS_WINDOW

        counts = await self._store.count_by_status(window_start)
        avg_attempts = await self._store.average_attempts(window_start)

        completed = counts.get(OperationStatus.COMPLETED, 0)
        failed = counts.get(OperationStatus.FAILED, 0)
        finished = completed + failed
        success_rate = round(completed / finished * 100, 2) if finished else None

        return RetryStats(
            window_start=window_start,
            total=sum(counts.values()),
            pending=counts.get(OperationStatus.PENDING, 0),
            processing=counts.get(OperationStatus.PROCESSING, 0),
            completed=completed,
            failed=failed,
            cancelled=counts.get(OperationStatus.CANCELLED, 0),
            avg_attempts=round(avg_attempts, 2) if avg_attempts is not None else None,
            success_rate=success_rate,
        )

    async def get_health(self) -> HealthReport:
        """
        Retry 시스템 헬스 체크

        - critical_failures: 최근 24시간 failed 건수 (10건 초과면 critical)
        - overdue_operations: 실행 예정 시각이 1시간 넘게 지난 pending 건수 (5건 초과면 warning)
        - stuck_operations: 30분 넘게 processing인 건수 (3건 초과면 warning)
        """
        now = self._now()
        counts = await self._store.health_counts(
            since=now - DEFAULT_STATS_WINDOW,
            overdue_before=now - OVERDUE_AFTER,
            stuck_before=now - STUCK_AFTER,
        )

        metrics = [
            _metric('critical_failures', counts['critical_failures'],
                    CRITICAL_FAILURES_THRESHOLD, HealthStatus.CRITICAL),
            _metric('overdue_operations', counts['overdue_operations'],
                    OVERDUE_OPERATIONS_THRESHOLD, HealthStatus.WARNING),
            _metric('stuck_operations', counts['stuck_operations'],
                    STUCK_OPERATIONS_THRESHOLD, HealthStatus.WARNING),
        ]
        status = max((m.status for m in metrics), key=_HEALTH_SEVERITY.__getitem__)
        return HealthReport(status=status, checked_at=now, metrics=metrics)


def _metric(name: str, value: int, threshold: int, breached: HealthStatus) -> HealthMetric:
    status = breached if value > threshold else HealthStatus.OK
    return HealthMetric(name=name, value=value, threshold=threshold, status=status)
