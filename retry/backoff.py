"""지수 백오프 계산"""

from datetime import timedelta

from retry.model.config import RetryConfig


def calculate_delay(attempt_number: int, config: RetryConfig) -> timedelta:
    """
    다음 시도까지의 대기 시간

    min(base_delay * backoff_multiplier^(attempt_number - 1), max_delay)

    Args:
        attempt_number: 이번에 수행할 시도 번호 (1부터 시작, 1 미만은 1로 취급)
        config: 재시도 정책
    """
    exponent = max(attempt_number, 1) - 1
    try:
        seconds = config.base_delay * config.backoff_multiplier ** exponent
    except OverflowError:
        seconds = config.max_delay
    return timedelta(seconds=min(seconds, config.max_delay))
