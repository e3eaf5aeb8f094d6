"""
poller / admin API 통합 실행

python main.py [poller] [admin] 또는 fulfillu run 으로 실행합니다.
"""

import asyncio
import logging
import signal
import sys
from typing import Any

from database.registry import DatabaseRegistry
from fulfillu.wiring import build_manager, poller_config_from
from retry.manager import RetryManager
from retry.poller import RetryPoller

logger = logging.getLogger(__name__)

VALID_MODULES = ("poller", "admin")


async def run_poller(manager: RetryManager, config: dict[str, Any], stop_event: asyncio.Event) -> None:
    """RetryPoller 실행"""
    poller = RetryPoller(manager, poller_config_from(config))

    async def wait_stop():
        await stop_event.wait()
        await poller.stop()

    stop_task = asyncio.create_task(wait_stop())
    try:
        await poller.start()
    finally:
        stop_task.cancel()


async def run_admin(manager: RetryManager, config: dict[str, Any], stop_event: asyncio.Event) -> None:
    """Admin API 실행 (poller와 같은 RetryManager 공유)"""
    import uvicorn
    from admin.main import create_app

    admin_config = config.get("admin", {}) or {}
    app = create_app(config=config, manager=manager)
    uv_config = uvicorn.Config(
        app,
        host=admin_config.get("host", "0.0.0.0"),
        port=admin_config.get("port", 8080),
        log_level="info",
    )
    server = uvicorn.Server(uv_config)

    async def wait_stop():
        await stop_event.wait()
        server.should_exit = True

    stop_task = asyncio.create_task(wait_stop())
    try:
        await server.serve()
    finally:
        stop_task.cancel()


async def run(modules: list[str], config: dict[str, Any]) -> None:
    """지정한 모듈 실행 (SIGINT/SIGTERM 시 graceful shutdown)"""
    manager = await build_manager(config)
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        stop_event.set()

    # Windows는 add_signal_handler를 지원하지 않음
    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler)

    tasks = []
    if "poller" in modules:
        tasks.append(asyncio.create_task(run_poller(manager, config, stop_event)))
        logger.info("RetryPoller started")
    if "admin" in modules:
        tasks.append(asyncio.create_task(run_admin(manager, config, stop_event)))
        logger.info("Admin API started")

    try:
        await asyncio.gather(*tasks)
    except asyncio.CancelledError:
        logger.info("Tasks cancelled")
    finally:
        await DatabaseRegistry.close_all()
        logger.info("All modules stopped")
