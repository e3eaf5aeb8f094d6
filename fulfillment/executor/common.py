"""실행기 공통 유틸리티"""

from typing import Awaitable, TypeVar

from fulfillment.exception import ProviderAPIError
from retry.exception import PermanentExecutionError

T = TypeVar('T')


async def call_provider(call: Awaitable[T]) -> T:
    """
    Provider 호출 (재시도 불가능한 API 오류는 PermanentExecutionError로 변환)

    429/5xx, 타임아웃, 네트워크 오류는 그대로 전파되어 재시도됩니다.
    """
    try:
        return await call
    except ProviderAPIError as e:
        if not e.is_retryable:
            raise PermanentExecutionError(f"Provider rejected request: {e.message}") from e
        raise
