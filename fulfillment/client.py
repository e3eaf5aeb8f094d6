"""Print provider 클라이언트 인터페이스"""

from abc import ABC, abstractmethod

from fulfillment.model import ProviderOrder, ProviderOrderRequest


class PrintProviderClient(ABC):
    """
    Print-on-demand provider API 클라이언트

    구현체는 다음 예외로 실패를 알려야 합니다.
    - ProviderAPIError: 오류 응답 (is_retryable로 재시도 여부 판단)
    - ProviderTimeoutError / ProviderNetworkError: 재시도 대상
    """

    @abstractmethod
    async def create_order(self, request: ProviderOrderRequest, idempotency_key: str) -> ProviderOrder:
        """
        주문 생성

        같은 idempotency_key로 다시 호출하면 provider는 기존 주문을 반환해야 합니다.
        """
        ...

    @abstractmethod
    async def get_order(self, provider_order_id: str) -> ProviderOrder:
        """주문 조회"""
        ...
