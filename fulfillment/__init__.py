"""
풀필먼트 도메인 패키지

외부 협력 객체(print provider 클라이언트, 주문 저장소, 알림 발송기)의 인터페이스와
이를 사용하는 기본 실행기를 제공합니다.
"""

from fulfillment.client import PrintProviderClient
from fulfillment.exception import (
    ProviderError,
    ProviderAPIError,
    ProviderTimeoutError,
    ProviderNetworkError,
)
from fulfillment.notifier import NotificationDispatcher
from fulfillment.repository import OrderRepository

__all__ = [
    'PrintProviderClient',
    'OrderRepository',
    'NotificationDispatcher',
    'ProviderError',
    'ProviderAPIError',
    'ProviderTimeoutError',
    'ProviderNetworkError',
]
