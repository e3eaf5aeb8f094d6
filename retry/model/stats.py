"""
배치 처리 결과 / 통계 / 헬스 체크 모델
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class ProcessOutcome(str, Enum):
    """단일 오퍼레이션 처리 결과"""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"  # 다른 워커가 먼저 선점함


class BatchResult(BaseModel):
    """process_pending_batch 결과"""
    processed: int = 0
    failed: int = 0
    skipped: int = 0


class RetryStats(BaseModel):
    """기간 내 상태별 집계"""
    window_start: datetime
    total: int = 0
    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    cancelled: int = 0
    avg_attempts: float | None = None
    success_rate: float | None = None  # completed / (completed + failed) * 100


class HealthStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"
    CRITICAL = "critical"


class HealthMetric(BaseModel):
    """헬스 지표 1개"""
    name: str
    value: int
    threshold: int
    status: HealthStatus


class HealthReport(BaseModel):
    """Retry 시스템 헬스 체크 결과"""
    status: HealthStatus
    checked_at: datetime
    metrics: list[HealthMetric]
