"""재시도 오퍼레이션 관련 모델 정의"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from retry.model import OperationStatus


class OperationResponse(BaseModel):
    """오퍼레이션 응답 모델"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str
    subject_id: str
    payload: dict[str, Any]
    attempts: int
    status: OperationStatus
    last_attempt_at: datetime | None = None
    next_retry_at: datetime | None = None
    last_error: str | None = None
    result: Any = None
    retry_of: str | None = None
    created_at: datetime
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    cancelled_at: datetime | None = None


class ScheduleRequest(BaseModel):
    """오퍼레이션 등록 요청"""
    type: str = Field(..., min_length=1, max_length=100, description="오퍼레이션 타입")
    subject_id: str = Field(..., min_length=1, max_length=255, description="주문 id")
    payload: dict[str, Any] = Field(default_factory=dict, description="실행기 payload")
    immediate: bool = Field(default=False, description="등록 직후 처리 여부")


class ProcessResponse(BaseModel):
    """단건 처리 결과"""
    success: bool
    operation: OperationResponse | None = None


class RequeueRequest(BaseModel):
    """failed 오퍼레이션 재등록 요청"""
    type: str | None = Field(default=None, description="오퍼레이션 타입 필터")
    max_age_hours: float = Field(default=24.0, gt=0, description="재등록 대상 기간")
    delay_minutes: float = Field(default=60.0, ge=0, description="재등록 후 첫 실행까지 대기 시간")


class RequeueResponse(BaseModel):
    requeued: list[str]


class SubjectCancelResponse(BaseModel):
    subject_id: str
    cancelled: int


class RecoverResponse(BaseModel):
    recovered: int
