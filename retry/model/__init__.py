"""Retry 엔진 모델 패키지"""

from retry.model.config import RetryConfig, PollerConfig
from retry.model.operation import (
    OperationType,
    OperationStatus,
    RetryableOperation,
    ALLOWED_TRANSITIONS,
    can_transition,
    type_name,
)
from retry.model.stats import (
    ProcessOutcome,
    BatchResult,
    RetryStats,
    HealthStatus,
    HealthMetric,
    HealthReport,
)

__all__ = [
    'RetryConfig',
    'PollerConfig',
    'OperationType',
    'OperationStatus',
    'RetryableOperation',
    'ALLOWED_TRANSITIONS',
    'can_transition',
    'type_name',
    'ProcessOutcome',
    'BatchResult',
    'RetryStats',
    'HealthStatus',
    'HealthMetric',
    'HealthReport',
]
