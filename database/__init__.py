"""
비동기 데이터베이스 패키지

사용 예시:
    from database import get_db
    from database.registry import DatabaseRegistry

    # 초기화 (config에서)
    await DatabaseRegistry.init_from_config(config)
    db = get_db('default')

    # 수동 트랜잭션
    async with db.transaction() as tx:
        await tx.execute("UPDATE ...")

    # 읽기 전용 트랜잭션
    async with db.transaction(readonly=True) as tx:
        row = await tx.fetch_one("SELECT ...")
"""

from database.exception import (
    DatabaseError,
    ConnectionPoolExhaustedError,
    ReadOnlyTransactionError,
    TransactionError,
    QueryExecutionError,
)
from database.base import BaseDatabase
from database.registry import DatabaseRegistry, get_db

__all__ = [
    'DatabaseError',
    'ConnectionPoolExhaustedError',
    'ReadOnlyTransactionError',
    'TransactionError',
    'QueryExecutionError',
    'BaseDatabase',
    'DatabaseRegistry',
    'get_db',
]
