"""Admin API 모델 패키지"""

from admin.api.model.common import PageResponse, ErrorResponse
from admin.api.model.operation import (
    OperationResponse,
    ScheduleRequest,
    ProcessResponse,
    RequeueRequest,
    RequeueResponse,
    SubjectCancelResponse,
    RecoverResponse,
)

__all__ = [
    'PageResponse',
    'ErrorResponse',
    'OperationResponse',
    'ScheduleRequest',
    'ProcessResponse',
    'RequeueRequest',
    'RequeueResponse',
    'SubjectCancelResponse',
    'RecoverResponse',
]
