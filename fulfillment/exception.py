"""
Print provider 클라이언트 예외 클래스 정의
"""

# 재시도하면 성공할 수 있는 HTTP 상태 코드
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class ProviderError(Exception):
    """Print provider 기본 예외"""
    pass


class ProviderAPIError(ProviderError):
    """Provider API가 오류 응답을 반환함"""
    def __init__(self, status_code: int, message: str = ""):
        self.status_code = status_code
        self.message = f"Provider API error {status_code}: {message}" if message else f"Provider API error {status_code}"
        super().__init__(self.message)

    @property
    def is_retryable(self) -> bool:
        return self.status_code in RETRYABLE_STATUS_CODES


class ProviderTimeoutError(ProviderError):
    """Provider 요청 타임아웃"""
    pass


class ProviderNetworkError(ProviderError):
    """Provider 연결 실패"""
    pass
