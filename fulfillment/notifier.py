"""고객 알림 발송 인터페이스"""

from abc import ABC, abstractmethod

from fulfillment.model import NotificationPayload


class NotificationDispatcher(ABC):

    @abstractmethod
    async def send(
        self,
        order_id: str,
        notification: NotificationPayload,
        idempotency_key: str,
    ) -> str | None:
        """
        알림 발송, 생성된 알림 id 반환

        같은 idempotency_key로 다시 호출되면 새로 발송하지 않고 기존 알림 id를 반환해야 합니다.
        """
        ...
