"""
Retry 엔진 설정 모델
"""

from dataclasses import dataclass

from pydantic import BaseModel, Field


class RetryConfig(BaseModel):
    """재시도 정책 설정 (시간 단위: 초)"""
    max_retries: int = Field(default=5, ge=1, le=100, description="최대 실행 시도 횟수")
    base_delay: float = Field(default=1.0, gt=0, description="첫 재시도 대기 시간")
    max_delay: float = Field(default=300.0, gt=0, description="재시도 대기 시간 상한")
    backoff_multiplier: float = Field(default=2.0, ge=1.0, description="시도마다 곱해지는 배수")


@dataclass
class PollerConfig:
    """RetryPoller 설정"""
    poll_interval_seconds: float = 30.0
    batch_size: int = 100
    stuck_after_seconds: float = 1800.0  # processing 상태로 30분 이상 머무르면 중단된 것으로 간주
    shutdown_timeout_seconds: float = 30.0
