"""
SQLiteDatabase: 설정 기반 SQLite 데이터베이스

풀 생성, 스키마 적용(init.sql), aiosql 쿼리 세트 캐시를 담당합니다.

database.yaml 예시:
    databases:
      default:
        type: sqlite
        path: ./data/fulfillu.db
        pool:
          pool_size: 5
        options:
          busy_timeout: 5000
"""

import logging
from pathlib import Path
from typing import Any

import aiosql
from aiosql.queries import Queries

from database.base import BaseDatabase
from database.sqlite3.pool import PoolConfig, SQLiteConnectionPool, SqliteOptions
from database.sqlite3.transaction import SQLiteTransaction

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).parent / 'sql' / 'init.sql'


class SQLiteDatabase(BaseDatabase):
    """
    SQLite 데이터베이스 구현

    사용 예시:
        db = await SQLiteDatabase.create('default', {'path': './data/fulfillu.db'})

        async with db.transaction() as tx:
            await tx.execute(...)
    """

    def __init__(self, name: str, config: dict[str, Any]):
        super().__init__(name)
        self._config = config
        self._pool: SQLiteConnectionPool | None = None
        self._queries: dict[str, Queries] = {}

    @classmethod
    async def create(cls, name: str, config: dict[str, Any]) -> 'SQLiteDatabase':
        """인스턴스 생성, 풀 오픈, 스키마 적용"""
        instance = cls(name, config)
        instance._pool = SQLiteConnectionPool(
            config.get('path', f'./data/{name}.db'),
            PoolConfig.from_config(config.get('pool')),
            SqliteOptions.from_config(config.get('options')),
        )
        await instance._pool.open()
        await instance._apply_schema()
        logger.info(f"SQLiteDatabase '{name}' initialized: {instance._pool.path}")
        return instance

    async def _apply_schema(self) -> None:
        """init.sql의 테이블/인덱스 생성 (IF NOT EXISTS)"""
        schema = aiosql.from_path(str(SCHEMA_PATH), "aiosqlite")
        pooled = await self.pool.acquire()
        try:
            await schema.create_retry_operations_table(pooled.connection)
            await schema.create_retry_operations_indexes(pooled.connection)
            await pooled.connection.commit()
        finally:
            await self.pool.release(pooled)

    def transaction(self, readonly: bool = False) -> SQLiteTransaction:
        return SQLiteTransaction(self.pool, readonly)

    @property
    def pool(self) -> SQLiteConnectionPool:
        if self._pool is None:
            raise RuntimeError(f"Database '{self.name}' not initialized")
        return self._pool

    def load_queries(self, name: str, sql_path: str) -> Queries:
        """aiosql 쿼리 세트 로드 (name으로 캐시)"""
        if name not in self._queries:
            self._queries[name] = aiosql.from_path(sql_path, "aiosqlite")
        return self._queries[name]

    def get_queries(self, name: str) -> Queries | None:
        return self._queries.get(name)

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
        logger.info(f"SQLiteDatabase '{self.name}' closed")
