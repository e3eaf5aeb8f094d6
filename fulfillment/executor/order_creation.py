"""order_creation 실행기 - 주문을 print provider에 제출"""

import logging
from typing import Any

from fulfillment.client import PrintProviderClient
from fulfillment.executor.common import call_provider
from fulfillment.model import (
    Order,
    OrderCreationPayload,
    OrderCreationResult,
    ProviderOrderItem,
    ProviderOrderRequest,
)
from fulfillment.repository import OrderRepository
from retry.base import BaseExecutor
from retry.exception import PermanentExecutionError

logger = logging.getLogger(__name__)

ORDER_PROCESSING_STATUS = 'processing'


def default_idempotency_key(order_id: str) -> str:
    return f"order-{order_id}"


def _public_image_url(url: str | None) -> str | None:
    if url and url.startswith(('http://', 'https://')):
        return url
    return None


def build_provider_request(order: Order, shipping_method: str = 'Standard') -> ProviderOrderRequest:
    """
    주문을 provider 요청으로 변환

    Raises:
        PermanentExecutionError: 항목이 없거나 SKU / 이미지 URL이 잘못됨
    """
    if not order.items:
        raise PermanentExecutionError(f"Order {order.id} has no items")

    items = []
    for index, item in enumerate(order.items):
        sku = item.sku.strip()
        if not sku:
            raise PermanentExecutionError(f"Invalid SKU for item {index} of order {order.id}")

        # provider는 공개된 절대 URL만 받음
        image_url = _public_image_url(item.image_url)
        if image_url is None:
            raise PermanentExecutionError(
                f"Missing or invalid image URL for item {index} of order {order.id}: {item.image_url!r}"
            )

        items.append(ProviderOrderItem(
            sku=sku,
            quantity=item.quantity,
            image_url=image_url,
            frame_size=item.frame_size,
            frame_style=item.frame_style,
            frame_material=item.frame_material,
        ))

    return ProviderOrderRequest(
        order_reference=order.order_number or f"ORDER-{order.id[-8:]}",
        items=items,
        shipping_address=order.shipping_address,
        billing_address=order.billing_address,
        customer_email=order.customer_email,
        customer_phone=order.customer_phone,
        shipping_method=shipping_method,
    )


class OrderCreationExecutor(BaseExecutor):
    """
    주문 제출

    이미 provider 주문 id가 기록된 주문은 다시 제출하지 않고,
    provider 호출에는 idempotency key를 붙여 재시도 시 중복 주문이 생기지 않게 합니다.
    """

    def __init__(self, client: PrintProviderClient, orders: OrderRepository):
        self._client = client
        self._orders = orders

    async def execute(self, subject_id: str, payload: dict[str, Any]) -> OrderCreationResult:
        params = self.parse_payload(OrderCreationPayload, payload)

        order = await self._orders.get_order(subject_id)
        if order is None:
            raise PermanentExecutionError(f"Order not found: {subject_id}")

        fulfillment = await self._orders.get_fulfillment(subject_id)
        if fulfillment is not None and fulfillment.provider_order_id:
            logger.info(
                f"Provider order already exists, skipping submission: "
                f"order={subject_id}, provider_order={fulfillment.provider_order_id}"
            )
            return OrderCreationResult(
                provider_order_id=fulfillment.provider_order_id,
                status=fulfillment.status or 'unknown',
                tracking_number=fulfillment.tracking_number,
                resubmitted=False,
            )

        request = build_provider_request(order, params.shipping_method)
        idempotency_key = params.idempotency_key or default_idempotency_key(subject_id)

        provider_order = await call_provider(self._client.create_order(request, idempotency_key))
        logger.info(f"Provider order created: order={subject_id}, provider_order={provider_order.id}")

        await self._orders.update_fulfillment(subject_id, provider_order.to_fulfillment_update())
        await self._orders.update_order_status(subject_id, ORDER_PROCESSING_STATUS)

        return OrderCreationResult(
            provider_order_id=provider_order.id,
            status=provider_order.status.lower(),
            tracking_number=provider_order.tracking_number,
        )
