"""
오퍼레이션 타입별 payload / 결과 모델
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OrderCreationPayload(BaseModel):
    """order_creation payload"""
    model_config = ConfigDict(extra='allow')

    idempotency_key: str | None = None
    shipping_method: str = 'Standard'


class OrderCreationResult(BaseModel):
    provider_order_id: str
    status: str
    tracking_number: str | None = None
    resubmitted: bool = True  # False면 이미 생성된 provider 주문을 재사용함


class StatusRefreshPayload(BaseModel):
    """status_refresh payload (비어 있어도 됨)"""
    model_config = ConfigDict(extra='allow')


class StatusRefreshResult(BaseModel):
    provider_order_id: str
    status: str
    previous_status: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None


class PaymentWebhookPayload(BaseModel):
    """payment_webhook payload (수신된 결제 이벤트)"""
    event_id: str = Field(min_length=1)
    event_type: str = Field(min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)


class PaymentWebhookResult(BaseModel):
    event_id: str
    event_type: str
    applied: bool  # False면 이미 적용된 이벤트


class NotificationPayload(BaseModel):
    """notification_send payload"""
    type: str = Field(min_length=1)
    title: str
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    # 없으면 notification-<order_id>-<type>
    idempotency_key: str | None = None


class NotificationResult(BaseModel):
    notification_id: str | None = None
    type: str
