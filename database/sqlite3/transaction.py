"""SQLite 트랜잭션"""

import logging
import sqlite3
from typing import Any

import aiosqlite

from database.exception import QueryExecutionError, ReadOnlyTransactionError, TransactionError
from database.sqlite3.pool import PooledConnection, SQLiteConnectionPool

logger = logging.getLogger(__name__)

WRITE_STATEMENTS = ('INSERT', 'UPDATE', 'DELETE', 'REPLACE', 'CREATE', 'DROP', 'ALTER')


def _log_sql(sql: str, parameters: Any = None) -> None:
    statement = ' '.join(sql.split())
    if parameters:
        logger.debug(f"[SQL] {statement} | params: {parameters}")
    else:
        logger.debug(f"[SQL] {statement}")


class SQLiteTransaction:
    """
    풀에서 연결을 빌려 BEGIN부터 COMMIT/ROLLBACK까지 관리

    쓰기 트랜잭션은 BEGIN IMMEDIATE로 시작하여 시작 시점에 쓰기 락을 잡고,
    readonly 트랜잭션은 BEGIN DEFERRED로 시작하며 쓰기 쿼리를 거부합니다.
    블록 안에서 예외가 나면 롤백 후 예외를 그대로 전파합니다.

    사용 예시:
        async with db.transaction() as tx:
            await tx.execute("UPDATE retry_operations SET ...", (...))

        async with db.transaction(readonly=True) as tx:
            rows = await queries.list_operations(tx.connection, ...)
    """

    def __init__(self, pool: SQLiteConnectionPool, readonly: bool = False):
        self._pool = pool
        self._readonly = readonly
        self._pooled: PooledConnection | None = None
        self._active = False

    @property
    def connection(self) -> aiosqlite.Connection:
        """aiosql 쿼리에 넘길 연결"""
        if self._pooled is None:
            raise TransactionError("Transaction is not started")
        return self._pooled.connection

    @property
    def readonly(self) -> bool:
        return self._readonly

    @property
    def in_transaction(self) -> bool:
        return self._active

    async def __aenter__(self) -> "SQLiteTransaction":
        self._pooled = await self._pool.acquire()
        begin = "BEGIN DEFERRED" if self._readonly else "BEGIN IMMEDIATE"
        try:
            await self._pooled.connection.execute(begin)
        except sqlite3.Error as e:
            await self._release()
            raise TransactionError(f"Failed to begin transaction: {e}") from e
        self._active = True
        logger.debug(f"Transaction started ({begin})")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        try:
            if exc_type is None:
                await self._commit()
            else:
                await self._rollback()
        finally:
            await self._release()

    async def _commit(self) -> None:
        try:
            await self._pooled.connection.commit()
        except sqlite3.Error as e:
            await self._rollback()
            raise TransactionError(f"Failed to commit transaction: {e}") from e
        self._active = False
        logger.debug("Transaction committed")

    async def _rollback(self) -> None:
        try:
            await self._pooled.connection.rollback()
        except sqlite3.Error as e:
            logger.error(f"Rollback failed: {e}")
        self._active = False
        logger.debug("Transaction rolled back")

    async def _release(self) -> None:
        pooled, self._pooled = self._pooled, None
        if pooled is not None:
            await self._pool.release(pooled)

    async def execute(self, sql: str, parameters: Any = None) -> aiosqlite.Cursor:
        """
        SQL 실행

        Raises:
            ReadOnlyTransactionError: readonly 트랜잭션에서 쓰기 쿼리
            QueryExecutionError: 문법 오류, 없는 테이블 등 (무결성 제약 위반은 sqlite3 예외 그대로)
        """
        if self._readonly and sql.lstrip().upper().startswith(WRITE_STATEMENTS):
            raise ReadOnlyTransactionError("Cannot execute write query in readonly transaction")

        _log_sql(sql, parameters)
        try:
            return await self.connection.execute(sql, parameters or ())
        except sqlite3.OperationalError as e:
            raise QueryExecutionError(sql, str(e)) from e

    async def fetch_one(self, sql: str, parameters: Any = None) -> aiosqlite.Row | None:
        cursor = await self.execute(sql, parameters)
        row = await cursor.fetchone()
        logger.debug(f"[SQL Result] {1 if row else 0} row(s)")
        return row

    async def fetch_all(self, sql: str, parameters: Any = None) -> list[aiosqlite.Row]:
        cursor = await self.execute(sql, parameters)
        rows = list(await cursor.fetchall())
        logger.debug(f"[SQL Result] {len(rows)} row(s)")
        return rows

    async def fetch_val(self, sql: str, parameters: Any = None) -> Any:
        """첫 행의 첫 컬럼"""
        row = await self.fetch_one(sql, parameters)
        return row[0] if row else None
