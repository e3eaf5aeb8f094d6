"""status_refresh 실행기 - provider 주문 상태를 풀필먼트 기록에 반영"""

import logging
from typing import Any

from fulfillment.client import PrintProviderClient
from fulfillment.executor.common import call_provider
from fulfillment.model import StatusRefreshPayload, StatusRefreshResult
from fulfillment.repository import OrderRepository
from retry.base import BaseExecutor
from retry.exception import ExecutionError

logger = logging.getLogger(__name__)


class StatusRefreshExecutor(BaseExecutor):

    def __init__(self, client: PrintProviderClient, orders: OrderRepository):
        self._client = client
        self._orders = orders

    async def execute(self, subject_id: str, payload: dict[str, Any]) -> StatusRefreshResult:
        self.parse_payload(StatusRefreshPayload, payload)

        fulfillment = await self._orders.get_fulfillment(subject_id)
        if fulfillment is None or not fulfillment.provider_order_id:
            # 주문 제출이 아직 끝나지 않았을 수 있으므로 재시도
            raise ExecutionError(f"Provider order not found for order {subject_id}")

        provider_order = await call_provider(self._client.get_order(fulfillment.provider_order_id))
        update = provider_order.to_fulfillment_update()
        await self._orders.update_fulfillment(subject_id, update)

        if fulfillment.status != update.status:
            logger.info(
                f"Provider status changed: order={subject_id}, "
                f"{fulfillment.status} -> {update.status}"
            )

        return StatusRefreshResult(
            provider_order_id=provider_order.id,
            status=update.status,
            previous_status=fulfillment.status,
            tracking_number=provider_order.tracking_number,
            tracking_url=provider_order.tracking_url,
        )
