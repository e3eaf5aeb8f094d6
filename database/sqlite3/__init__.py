"""
SQLite3 비동기 데이터베이스 패키지

사용 예시:
    from database.sqlite3 import SQLiteDatabase

    db = await SQLiteDatabase.create('default', {'path': './data/fulfillu.db'})
    async with db.transaction() as tx:
        await tx.execute("UPDATE ...")
"""

from database.sqlite3.connection import SQLiteDatabase
from database.sqlite3.pool import (
    PoolConfig,
    PooledConnection,
    SQLiteConnectionPool,
    SqliteOptions,
)
from database.sqlite3.transaction import SQLiteTransaction

__all__ = [
    'SQLiteDatabase',
    'SQLiteConnectionPool',
    'SQLiteTransaction',
    'PoolConfig',
    'SqliteOptions',
    'PooledConnection',
]
