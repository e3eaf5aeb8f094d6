"""notification_send 실행기 - 고객 알림 발송"""

from typing import Any

from fulfillment.model import NotificationPayload, NotificationResult
from fulfillment.notifier import NotificationDispatcher
from retry.base import BaseExecutor


def default_notification_key(order_id: str, notification_type: str) -> str:
    return f"notification-{order_id}-{notification_type}"


class NotificationSendExecutor(BaseExecutor):

    def __init__(self, notifier: NotificationDispatcher):
        self._notifier = notifier

    async def execute(self, subject_id: str, payload: dict[str, Any]) -> NotificationResult:
        notification = self.parse_payload(NotificationPayload, payload)
        idempotency_key = notification.idempotency_key or default_notification_key(
            subject_id, notification.type
        )
        notification_id = await self._notifier.send(subject_id, notification, idempotency_key)
        return NotificationResult(notification_id=notification_id, type=notification.type)
