"""풀필먼트 모델 패키지"""

from fulfillment.model.order import (
    Order,
    OrderItem,
    FulfillmentRecord,
    FulfillmentUpdate,
    ProviderOrder,
    ProviderOrderItem,
    ProviderOrderRequest,
)
from fulfillment.model.payload import (
    OrderCreationPayload,
    OrderCreationResult,
    StatusRefreshPayload,
    StatusRefreshResult,
    PaymentWebhookPayload,
    PaymentWebhookResult,
    NotificationPayload,
    NotificationResult,
)

__all__ = [
    'Order',
    'OrderItem',
    'FulfillmentRecord',
    'FulfillmentUpdate',
    'ProviderOrder',
    'ProviderOrderItem',
    'ProviderOrderRequest',
    'OrderCreationPayload',
    'OrderCreationResult',
    'StatusRefreshPayload',
    'StatusRefreshResult',
    'PaymentWebhookPayload',
    'PaymentWebhookResult',
    'NotificationPayload',
    'NotificationResult',
]
