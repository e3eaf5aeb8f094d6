"""fulfillu - 풀필먼트 재시도 엔진"""

__version__ = "0.1.0"
