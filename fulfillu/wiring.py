"""
설정으로부터 RetryManager 구성

retry.yaml 예시:
    retry:
      database: default
      max_retries: 5
      executor_factory: myshop.fulfillment:register_executors

executor_factory는 ExecutorRegistry를 인자로 받아 실행기를 등록하는 함수입니다 (async 함수도 가능).
"""

import importlib
import inspect
import logging
from typing import Any, Callable

from database.registry import DatabaseRegistry, get_db
from retry.base import ExecutorRegistry
from retry.manager import RetryManager
from retry.model import PollerConfig, RetryConfig
from retry.store import SQLiteOperationStore

logger = logging.getLogger(__name__)


def load_executor_factory(path: str) -> Callable[[ExecutorRegistry], Any]:
    """"module:function" 형식의 경로로 실행기 등록 함수 로드"""
    module_name, sep, attr = path.partition(':')
    if not sep or not module_name or not attr:
        raise ValueError(f"Invalid executor factory path (expected 'module:function'): {path}")

    module = importlib.import_module(module_name)
    factory = getattr(module, attr, None)
    if factory is None or not callable(factory):
        raise ValueError(f"Executor factory not found: {path}")
    return factory


async def build_registry(factory_path: str | None = None) -> ExecutorRegistry:
    """ExecutorRegistry 생성 후 factory로 실행기 등록"""
    registry = ExecutorRegistry()
    if factory_path:
        factory = load_executor_factory(factory_path)
        result = factory(registry)
        if inspect.isawaitable(result):
            await result

    if len(registry) == 0:
        logger.warning("No executors registered, every operation will fail with UnknownOperationType")
    else:
        logger.info(f"Registered executors: {', '.join(registry.types())}")
    return registry


def retry_config_from(config: dict[str, Any]) -> RetryConfig:
    """retry 섹션에서 RetryConfig 필드만 추출"""
    retry_cfg = config.get('retry', {}) or {}
    fields = {k: v for k, v in retry_cfg.items() if k in RetryConfig.model_fields}
    return RetryConfig(**fields)


def poller_config_from(config: dict[str, Any]) -> PollerConfig:
    return PollerConfig(**(config.get('poller', {}) or {}))


async def build_manager(config: dict[str, Any], registry: ExecutorRegistry | None = None) -> RetryManager:
    """
    DB 초기화 후 RetryManager 생성

    Args:
        config: load_config() 결과 (databases, retry 섹션)
        registry: 이미 구성된 레지스트리 (None이면 executor_factory로 생성)
    """
    retry_cfg = config.get('retry', {}) or {}
    db_name = retry_cfg.get('database', 'default')

    await DatabaseRegistry.init_from_config(config, [db_name])
    store = SQLiteOperationStore(get_db(db_name))

    if registry is None:
        registry = await build_registry(retry_cfg.get('executor_factory'))

    manager = RetryManager(store, registry, retry_config_from(config))
    logger.info(
        f"RetryManager ready (database={db_name}, max_retries={manager.config.max_retries})"
    )
    return manager
