"""
재시도 오퍼레이션 모델 정의
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class OperationType(str, Enum):
    """기본 제공 오퍼레이션 타입 (ExecutorRegistry로 확장 가능)"""
    ORDER_CREATION = "order_creation"
    STATUS_REFRESH = "status_refresh"
    PAYMENT_WEBHOOK = "payment_webhook"
    NOTIFICATION_SEND = "notification_send"


class OperationStatus(str, Enum):
    """오퍼레이션 상태"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# 허용된 상태 전이 (completed/failed/cancelled에서 나가는 전이는 없음)
ALLOWED_TRANSITIONS: dict[OperationStatus, frozenset[OperationStatus]] = {
    OperationStatus.PENDING: frozenset({
        OperationStatus.PROCESSING,
        OperationStatus.CANCELLED,
        OperationStatus.FAILED,
    }),
    OperationStatus.PROCESSING: frozenset({
        OperationStatus.COMPLETED,
        OperationStatus.PENDING,
        OperationStatus.FAILED,
    }),
    OperationStatus.COMPLETED: frozenset(),
    OperationStatus.FAILED: frozenset(),
    OperationStatus.CANCELLED: frozenset(),
}


def can_transition(current: OperationStatus, target: OperationStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def type_name(operation_type: "OperationType | str") -> str:
    """Enum/문자열 타입을 저장용 문자열로 변환"""
    if isinstance(operation_type, Enum):
        return str(operation_type.value)
    return str(operation_type)


class RetryableOperation(BaseModel):
    """재시도 가능한 작업 단위 (retry_operations 테이블 1행)"""
    id: str
    type: str
    subject_id: str
    payload: dict[str, Any] = Field(default_factory=dict)
    attempts: int = Field(default=0, ge=0)
    status: OperationStatus = OperationStatus.PENDING
    last_attempt_at: datetime | None = None
    next_retry_at: datetime | None = None
    last_error: str | None = None
    result: Any = None
    retry_of: str | None = None
    created_at: datetime
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    cancelled_at: datetime | None = None

    @classmethod
    def from_row(cls, row) -> "RetryableOperation":
        """DB row를 모델로 변환 (payload/result는 JSON 문자열)"""
        # aiosqlite.Row는 .get()이 없으므로 dict 변환
        row_dict = dict(row)
        row_dict['payload'] = json.loads(row_dict.get('payload') or '{}')
        result = row_dict.get('result')
        row_dict['result'] = json.loads(result) if result is not None else None
        return cls(**row_dict)
