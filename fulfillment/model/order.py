"""
주문 / 풀필먼트 / Provider 주문 모델
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OrderItem(BaseModel):
    """주문 항목 (액자 1종)"""
    sku: str
    quantity: int = Field(default=1, ge=1)
    image_url: str | None = None
    frame_size: str = 'medium'
    frame_style: str = 'black'
    frame_material: str = 'wood'


class Order(BaseModel):
    """스토어 주문"""
    model_config = ConfigDict(extra='allow')

    id: str
    order_number: str | None = None
    status: str = 'paid'
    items: list[OrderItem] = Field(default_factory=list)
    shipping_address: dict[str, Any] = Field(default_factory=dict)
    billing_address: dict[str, Any] | None = None
    customer_email: str | None = None
    customer_phone: str | None = None


class FulfillmentRecord(BaseModel):
    """주문별 provider 풀필먼트 기록"""
    model_config = ConfigDict(extra='allow')

    order_id: str
    provider: str = 'prodigi'
    provider_order_id: str | None = None
    status: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    estimated_delivery: datetime | None = None


class FulfillmentUpdate(BaseModel):
    """풀필먼트 기록 갱신 내용"""
    provider_order_id: str | None = None
    status: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    estimated_delivery: datetime | None = None
    provider_response: dict[str, Any] = Field(default_factory=dict)


class ProviderOrderItem(BaseModel):
    """Provider 주문 요청 항목"""
    sku: str
    quantity: int
    image_url: str
    frame_size: str
    frame_style: str
    frame_material: str


class ProviderOrderRequest(BaseModel):
    """Provider 주문 생성 요청"""
    order_reference: str
    items: list[ProviderOrderItem]
    shipping_address: dict[str, Any]
    billing_address: dict[str, Any] | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    shipping_method: str = 'Standard'


class ProviderOrder(BaseModel):
    """Provider 주문 응답"""
    id: str
    status: str
    tracking_number: str | None = None
    tracking_url: str | None = None
    estimated_delivery: datetime | None = None
    raw: dict[str, Any] = Field(default_factory=dict)

    def to_fulfillment_update(self) -> FulfillmentUpdate:
        return FulfillmentUpdate(
            provider_order_id=self.id,
            status=self.status.lower(),
            tracking_number=self.tracking_number,
            tracking_url=self.tracking_url,
            estimated_delivery=self.estimated_delivery,
            provider_response=self.raw,
        )
