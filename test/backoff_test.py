"""
지수 백오프 계산 테스트

실행: python -m pytest test/backoff_test.py -v
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from retry.backoff import calculate_delay
from retry.model import RetryConfig


class TestCalculateDelay:
    """calculate_delay() 테스트"""

    def test_default_sequence(self):
        """기본 설정: 1, 2, 4, 8, 16초"""
        config = RetryConfig()
        delays = [calculate_delay(n, config) for n in range(1, 6)]
        assert delays == [timedelta(seconds=s) for s in (1, 2, 4, 8, 16)]

    def test_capped_by_max_delay(self):
        """max_delay를 넘지 않음"""
        config = RetryConfig(base_delay=10, max_delay=60, backoff_multiplier=3)
        assert calculate_delay(2, config) == timedelta(seconds=30)
        assert calculate_delay(3, config) == timedelta(seconds=60)
        assert calculate_delay(10, config) == timedelta(seconds=60)

    def test_matches_formula(self):
        """min(base * multiplier^(n-1), max)"""
        config = RetryConfig(base_delay=0.5, max_delay=100, backoff_multiplier=1.5)
        for n in range(1, 20):
            expected = min(0.5 * 1.5 ** (n - 1), 100)
            assert calculate_delay(n, config) == timedelta(seconds=expected)

    def test_non_decreasing(self):
        """시도 번호가 커질수록 줄어들지 않음"""
        config = RetryConfig(base_delay=2, max_delay=300, backoff_multiplier=2)
        delays = [calculate_delay(n, config) for n in range(1, 50)]
        assert delays == sorted(delays)
        assert max(delays) == timedelta(seconds=300)

    def test_multiplier_one_is_constant(self):
        """배수 1이면 고정 간격"""
        config = RetryConfig(base_delay=5, backoff_multiplier=1)
        assert {calculate_delay(n, config) for n in range(1, 10)} == {timedelta(seconds=5)}

    def test_attempt_below_one_treated_as_first(self):
        """0 이하 시도 번호는 첫 시도로 취급"""
        config = RetryConfig()
        assert calculate_delay(0, config) == calculate_delay(1, config)
        assert calculate_delay(-3, config) == calculate_delay(1, config)

    def test_huge_attempt_number(self):
        """float overflow가 나도 max_delay 반환"""
        config = RetryConfig(backoff_multiplier=10, max_delay=300)
        assert calculate_delay(10_000, config) == timedelta(seconds=300)


class TestRetryConfig:
    """RetryConfig 검증 테스트"""

    def test_defaults(self):
        config = RetryConfig()
        assert config.max_retries == 5
        assert config.base_delay == 1.0
        assert config.max_delay == 300.0
        assert config.backoff_multiplier == 2.0

    @pytest.mark.parametrize("fields", [
        {"max_retries": 0},
        {"base_delay": 0},
        {"max_delay": -1},
        {"backoff_multiplier": 0.5},
    ])
    def test_invalid_values(self, fields):
        with pytest.raises(ValidationError):
            RetryConfig(**fields)
