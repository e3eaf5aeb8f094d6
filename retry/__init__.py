"""
Retry 엔진 패키지

사용 예시:
    from retry import BaseExecutor, ExecutorRegistry, RetryManager
    from retry.model import OperationType, RetryConfig
    from retry.store import SQLiteOperationStore

    registry = ExecutorRegistry()

    @registry.handler(OperationType.NOTIFICATION_SEND)
    class SendNotification(BaseExecutor):
        async def execute(self, subject_id, payload):
            ...

    manager = RetryManager(SQLiteOperationStore(db), registry, RetryConfig())
"""

from retry.backoff import calculate_delay
from retry.base import BaseExecutor, ExecutorFunc, ExecutorRegistry, FunctionExecutor
from retry.exception import (
    RetryError,
    OperationNotFoundError,
    DuplicateOperationError,
    OperationConflictError,
    InvalidTransitionError,
    UnknownOperationTypeError,
    ExecutionError,
    PermanentExecutionError,
)
from retry.manager import RetryManager
from retry.model import (
    RetryConfig,
    PollerConfig,
    OperationType,
    OperationStatus,
    RetryableOperation,
    BatchResult,
    RetryStats,
    HealthStatus,
    HealthReport,
)
from retry.poller import RetryPoller

__all__ = [
    'calculate_delay',
    'BaseExecutor',
    'ExecutorFunc',
    'ExecutorRegistry',
    'FunctionExecutor',
    'RetryError',
    'OperationNotFoundError',
    'DuplicateOperationError',
    'OperationConflictError',
    'InvalidTransitionError',
    'UnknownOperationTypeError',
    'ExecutionError',
    'PermanentExecutionError',
    'RetryManager',
    'RetryPoller',
    'RetryConfig',
    'PollerConfig',
    'OperationType',
    'OperationStatus',
    'RetryableOperation',
    'BatchResult',
    'RetryStats',
    'HealthStatus',
    'HealthReport',
]
