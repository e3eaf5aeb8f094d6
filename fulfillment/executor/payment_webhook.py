"""payment_webhook 실행기 - 저장된 결제 이벤트를 주문에 적용"""

import logging
from typing import Any

from fulfillment.model import PaymentWebhookPayload, PaymentWebhookResult
from fulfillment.repository import OrderRepository
from retry.base import BaseExecutor
from retry.exception import PermanentExecutionError

logger = logging.getLogger(__name__)


class PaymentWebhookExecutor(BaseExecutor):
    """결제 이벤트 적용 (event_id 단위로 한 번만 적용)"""

    def __init__(self, orders: OrderRepository):
        self._orders = orders

    async def execute(self, subject_id: str, payload: dict[str, Any]) -> PaymentWebhookResult:
        event = self.parse_payload(PaymentWebhookPayload, payload)

        order = await self._orders.get_order(subject_id)
        if order is None:
            raise PermanentExecutionError(f"Order not found: {subject_id}")

        applied = await self._orders.apply_payment_event(
            subject_id, event.event_id, event.event_type, event.data
        )
        if not applied:
            logger.info(f"Payment event already applied: order={subject_id}, event={event.event_id}")

        return PaymentWebhookResult(
            event_id=event.event_id,
            event_type=event.event_type,
            applied=applied,
        )
