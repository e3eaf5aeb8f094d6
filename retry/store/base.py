"""Operation Store 인터페이스"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from retry.model.operation import OperationStatus, RetryableOperation


class OperationStore(ABC):
    """
    재시도 오퍼레이션 영속 저장소

    RetryManager의 정확성은 이 계약에 의존합니다.
    - 레코드 단위 원자성
    - update_status()의 expected_status 검사 (compare-and-swap)
    """

    @abstractmethod
    async def insert(self, operation: RetryableOperation) -> None:
        """
        오퍼레이션 저장

        Raises:
            DuplicateOperationError: 같은 id가 이미 존재
        """
        ...

    @abstractmethod
    async def get_by_id(self, operation_id: str) -> RetryableOperation:
        """
        id로 조회

        Raises:
            OperationNotFoundError: 존재하지 않음
        """
        ...

    @abstractmethod
    async def update_status(
        self,
        operation_id: str,
        patch: dict[str, Any],
        expected_status: OperationStatus | None = None,
        expected_attempts: int | None = None,
    ) -> RetryableOperation:
        """
        조건부 필드 갱신

        Args:
            operation_id: 대상 id
            patch: 갱신할 컬럼 -> 값
            expected_status: 저장된 status가 이 값일 때만 갱신
            expected_attempts: 저장된 attempts가 이 값일 때만 갱신

        Returns:
            갱신된 레코드

        Raises:
            OperationNotFoundError: 존재하지 않음
            OperationConflictError: 기대값과 저장된 값이 다름
            InvalidTransitionError: ALLOWED_TRANSITIONS에 없는 상태 전이
        """
        ...

    @abstractmethod
    async def query_due(self, now: datetime, limit: int | None = None) -> list[RetryableOperation]:
        """status=pending 이고 next_retry_at <= now 인 레코드 (next_retry_at 오름차순)"""
        ...

    @abstractmethod
    async def count_by_status(self, since: datetime) -> dict[OperationStatus, int]:
        """since 이후 생성된 레코드의 상태별 건수"""
        ...

    @abstractmethod
    async def average_attempts(self, since: datetime) -> float | None:
        """since 이후 생성된 레코드의 평균 시도 횟수"""
        ...

    @abstractmethod
    async def health_counts(
        self,
        since: datetime,
        overdue_before: datetime,
        stuck_before: datetime,
    ) -> dict[str, int]:
        """critical_failures / overdue_operations / stuck_operations 건수"""
        ...

    @abstractmethod
    async def list_operations(
        self,
        status: OperationStatus | None = None,
        subject_id: str | None = None,
        operation_type: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[RetryableOperation]:
        """필터 조회 (최근 생성순)"""
        ...

    @abstractmethod
    async def count_operations(
        self,
        status: OperationStatus | None = None,
        subject_id: str | None = None,
        operation_type: str | None = None,
    ) -> int:
        ...

    @abstractmethod
    async def query_stuck(self, before: datetime) -> list[RetryableOperation]:
        """마지막 시도가 before 이전인 processing 레코드"""
        ...

    @abstractmethod
    async def cancel_pending_for_subject(self, subject_id: str, now: datetime) -> int:
        """subject의 pending 레코드를 모두 cancelled로 변경, 변경 건수 반환"""
        ...

    @abstractmethod
    async def query_requeue_candidates(
        self,
        since: datetime,
        operation_type: str | None = None,
    ) -> list[RetryableOperation]:
        """since 이후 failed 되었고 아직 재등록되지 않은 레코드"""
        ...
