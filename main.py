"""
fulfillu 통합 진입점

RetryPoller와 Admin API를 한 번에 실행합니다.

사용법:
    python main.py                 # 전체 실행
    python main.py poller          # RetryPoller만
    python main.py admin           # Admin API만
"""

import asyncio
import sys

from common.config import load_config
from common.logging import setup_logging_from_config
from fulfillu.runner import VALID_MODULES, run


if __name__ == "__main__":
    args = sys.argv[1:]

    if args:
        modules = [m for m in args if m in VALID_MODULES]
        if not modules:
            print(f"Usage: python main.py [{'] ['.join(VALID_MODULES)}]")
            sys.exit(1)
    else:
        modules = list(VALID_MODULES)

    config = load_config()
    setup_logging_from_config(config)

    print(f"Starting fulfillu: {', '.join(modules)}")
    try:
        asyncio.run(run(modules, config))
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
