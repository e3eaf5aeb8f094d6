"""Admin API 서버 진입점"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from admin.api.router.api import router
from common.config import load_config
from database.registry import DatabaseRegistry
from fulfillu import __version__
from fulfillu.wiring import build_manager
from retry.manager import RetryManager

logger = logging.getLogger(__name__)


def create_app(config: dict[str, Any] | None = None, manager: RetryManager | None = None) -> FastAPI:
    """
    FastAPI 앱 생성

    Args:
        config: load_config() 결과 (None이면 설정 파일에서 로드)
        manager: 외부에서 구성한 RetryManager (None이면 시작 시 설정으로 생성하고 종료 시 DB를 닫음)
    """
    if config is None:
        config = load_config()
    admin_config = config.get('admin', {}) or {}

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """앱 생명주기 관리"""
        if manager is not None:
            app.state.retry_manager = manager
            yield
            return

        app.state.retry_manager = await build_manager(config)
        logger.info("Retry manager initialized")

        yield

        await DatabaseRegistry.close_all()
        logger.info("Database closed")

    app = FastAPI(
        title="fulfillu Admin API",
        description="풀필먼트 재시도 오퍼레이션 운영 API",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS 설정
    cors_config = admin_config.get('cors', {})
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_config.get('origins', ['*']),
        allow_credentials=cors_config.get('allow_credentials', True),
        allow_methods=cors_config.get('allow_methods', ['*']),
        allow_headers=cors_config.get('allow_headers', ['*']),
    )

    app.include_router(router)

    return app


if __name__ == "__main__":
    import uvicorn

    from common.logging import setup_logging_from_config

    config = load_config()
    setup_logging_from_config(config)
    admin_config = config.get('admin', {})

    uvicorn.run(
        create_app(config),
        host=admin_config.get('host', '0.0.0.0'),
        port=admin_config.get('port', 8080),
    )
