"""
기본 제공 풀필먼트 실행기

사용 예시:
    registry = ExecutorRegistry()
    register_fulfillment_executors(registry, provider_client, order_repository, notifier)
"""

from fulfillment.client import PrintProviderClient
from fulfillment.executor.notification_send import NotificationSendExecutor
from fulfillment.executor.order_creation import OrderCreationExecutor, build_provider_request
from fulfillment.executor.payment_webhook import PaymentWebhookExecutor
from fulfillment.executor.status_refresh import StatusRefreshExecutor
from fulfillment.notifier import NotificationDispatcher
from fulfillment.repository import OrderRepository
from retry.base import ExecutorRegistry
from retry.model import OperationType

__all__ = [
    'OrderCreationExecutor',
    'StatusRefreshExecutor',
    'PaymentWebhookExecutor',
    'NotificationSendExecutor',
    'build_provider_request',
    'register_fulfillment_executors',
]


def register_fulfillment_executors(
    registry: ExecutorRegistry,
    client: PrintProviderClient,
    orders: OrderRepository,
    notifier: NotificationDispatcher,
) -> ExecutorRegistry:
    """4개 기본 오퍼레이션 타입의 실행기 등록"""
    registry.register(OperationType.ORDER_CREATION, OrderCreationExecutor(client, orders))
    registry.register(OperationType.STATUS_REFRESH, StatusRefreshExecutor(client, orders))
    registry.register(OperationType.PAYMENT_WEBHOOK, PaymentWebhookExecutor(orders))
    registry.register(OperationType.NOTIFICATION_SEND, NotificationSendExecutor(notifier))
    return registry
