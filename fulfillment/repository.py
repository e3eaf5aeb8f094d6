"""주문 저장소 인터페이스"""

from abc import ABC, abstractmethod
from typing import Any

from fulfillment.model import FulfillmentRecord, FulfillmentUpdate, Order


class OrderRepository(ABC):
    """스토어 주문 / 풀필먼트 기록 접근"""

    @abstractmethod
    async def get_order(self, order_id: str) -> Order | None:
        ...

    @abstractmethod
    async def get_fulfillment(self, order_id: str) -> FulfillmentRecord | None:
        ...

    @abstractmethod
    async def update_fulfillment(self, order_id: str, update: FulfillmentUpdate) -> None:
        ...

    @abstractmethod
    async def update_order_status(self, order_id: str, status: str) -> None:
        ...

    @abstractmethod
    async def apply_payment_event(
        self,
        order_id: str,
        event_id: str,
        event_type: str,
        data: dict[str, Any],
    ) -> bool:
        """
        결제 이벤트 적용

        Returns:
            적용 여부 (같은 event_id가 이미 적용되었으면 False)
        """
        ...
