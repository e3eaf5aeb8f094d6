"""
aiosqlite 커넥션 풀

연결은 asyncio.Queue에 보관하고, 오래 쉬고 있던 연결은 꺼낼 때 새로 연결합니다.
여러 워커 프로세스가 같은 DB 파일을 공유하므로 WAL 모드와 busy_timeout을 기본으로 사용합니다.
"""

import asyncio
import logging
import sqlite3
from dataclasses import dataclass, field, fields
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from database.exception import ConnectionPoolExhaustedError, DatabaseError

logger = logging.getLogger(__name__)


def _from_mapping(cls, values: dict[str, Any] | None):
    """설정 dict에서 dataclass 필드에 해당하는 값만 사용"""
    values = values or {}
    return cls(**{f.name: values[f.name] for f in fields(cls) if f.name in values})


@dataclass
class PoolConfig:
    """커넥션 풀 설정 (database.yaml의 pool 섹션)"""
    pool_size: int = 5
    pool_timeout: float = 30.0
    max_idle_time: float = 300.0

    @classmethod
    def from_config(cls, values: dict[str, Any] | None) -> "PoolConfig":
        return _from_mapping(cls, values)


@dataclass
class SqliteOptions:
    """연결마다 적용하는 PRAGMA (database.yaml의 options 섹션)"""
    busy_timeout: int = 5000
    journal_mode: str = 'WAL'
    synchronous: str = 'NORMAL'
    cache_size: int = -2000
    foreign_keys: bool = True

    @classmethod
    def from_config(cls, values: dict[str, Any] | None) -> "SqliteOptions":
        return _from_mapping(cls, values)

    def pragmas(self) -> list[str]:
        return [
            f"PRAGMA busy_timeout={self.busy_timeout}",
            f"PRAGMA journal_mode={self.journal_mode}",
            f"PRAGMA synchronous={self.synchronous}",
            f"PRAGMA cache_size={self.cache_size}",
            f"PRAGMA foreign_keys={'ON' if self.foreign_keys else 'OFF'}",
        ]


@dataclass
class PooledConnection:
    """풀에서 빌려주는 연결"""
    connection: aiosqlite.Connection
    created_at: datetime = field(default_factory=datetime.now)
    last_used_at: datetime = field(default_factory=datetime.now)
    in_use: bool = False

    @property
    def idle_seconds(self) -> float:
        return (datetime.now() - self.last_used_at).total_seconds()


class SQLiteConnectionPool:
    """
    고정 크기 aiosqlite 커넥션 풀

    사용 예시:
        pool = SQLiteConnectionPool('./data/fulfillu.db', PoolConfig(pool_size=3))
        await pool.open()

        pooled = await pool.acquire()
        try:
            await pooled.connection.execute("SELECT 1")
        finally:
            await pool.release(pooled)
    """

    def __init__(
        self,
        path: str | Path,
        config: PoolConfig | None = None,
        options: SqliteOptions | None = None,
    ):
        self._path = Path(path)
        self._config = config or PoolConfig()
        self._options = options or SqliteOptions()
        self._idle: asyncio.Queue[PooledConnection] = asyncio.Queue()
        self._connections: list[PooledConnection] = []
        self._opened = False
        self._closed = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def config(self) -> PoolConfig:
        return self._config

    async def open(self) -> None:
        """pool_size만큼 연결 생성"""
        if self._opened:
            logger.warning(f"Connection pool already opened: {self._path}")
            return

        self._path.parent.mkdir(parents=True, exist_ok=True)
        for _ in range(self._config.pool_size):
            pooled = PooledConnection(connection=await self._connect())
            self._connections.append(pooled)
            self._idle.put_nowait(pooled)

        self._opened = True
        logger.info(
            f"Connection pool opened: {self._path} "
            f"(size={self._config.pool_size}, timeout={self._config.pool_timeout}s)"
        )

    async def _connect(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self._path, timeout=self._options.busy_timeout / 1000.0)
        conn.row_factory = aiosqlite.Row
        for pragma in self._options.pragmas():
            await conn.execute(pragma)
        return conn

    async def acquire(self, timeout: float | None = None) -> PooledConnection:
        """
        연결 빌리기

        Raises:
            ConnectionPoolExhaustedError: timeout 안에 반환된 연결이 없음
        """
        if not self._opened or self._closed:
            raise DatabaseError(f"Connection pool is not open: {self._path}")

        timeout = timeout or self._config.pool_timeout
        try:
            pooled = await asyncio.wait_for(self._idle.get(), timeout=timeout)
        except asyncio.TimeoutError:
            raise ConnectionPoolExhaustedError(
                f"Connection pool exhausted. Timeout after {timeout}s"
            )

        if pooled.idle_seconds > self._config.max_idle_time:
            await self._reconnect(pooled)

        pooled.in_use = True
        pooled.last_used_at = datetime.now()
        return pooled

    async def _reconnect(self, pooled: PooledConnection) -> None:
        """오래 쉬고 있던 연결 교체"""
        try:
            await pooled.connection.close()
            pooled.connection = await self._connect()
        except sqlite3.Error as e:
            self._idle.put_nowait(pooled)
            raise DatabaseError(f"Failed to refresh idle connection: {e}") from e
        pooled.created_at = datetime.now()
        logger.debug(f"Refreshed idle connection: {self._path}")

    async def release(self, pooled: PooledConnection) -> None:
        """연결 반환"""
        pooled.in_use = False
        pooled.last_used_at = datetime.now()
        self._idle.put_nowait(pooled)
        logger.debug(f"Connection released. Available: {self.available}/{self.size}")

    async def close(self) -> None:
        """모든 연결 종료"""
        self._closed = True
        for pooled in self._connections:
            try:
                await pooled.connection.close()
            except sqlite3.Error as e:
                logger.error(f"Error closing connection: {e}")
        self._connections.clear()
        logger.info(f"Connection pool closed: {self._path}")

    @property
    def size(self) -> int:
        return len(self._connections)

    @property
    def available(self) -> int:
        return self._idle.qsize()
