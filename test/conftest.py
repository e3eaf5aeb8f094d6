"""
공통 테스트 fixture

- database: tmp_path에 생성되는 SQLite DB (테스트마다 새로 생성)
- store: SQLiteOperationStore
- clock: 수동으로 진행시키는 UTC 시계
"""

import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from uuid import uuid4

import pytest
import pytest_asyncio

# 프로젝트 루트 경로 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from database.registry import DatabaseRegistry
from database.sqlite3 import SQLiteDatabase
from retry.model import OperationStatus, RetryableOperation
from retry.store import SQLiteOperationStore

logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

START_TIME = datetime(2026, 1, 15, 9, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """테스트용 시계 (advance()로만 시간이 흐름)"""

    def __init__(self, start: datetime = START_TIME):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_operation(**overrides) -> RetryableOperation:
    """저장소에 직접 넣을 오퍼레이션 생성"""
    fields = {
        'id': uuid4().hex,
        'type': 'order_creation',
        'subject_id': 'order-1',
        'payload': {},
        'attempts': 0,
        'status': OperationStatus.PENDING,
        'next_retry_at': START_TIME,
        'created_at': START_TIME,
    }
    fields.update(overrides)
    return RetryableOperation(**fields)


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def database(tmp_path):
    """테스트용 SQLiteDatabase (DatabaseRegistry에 'default'로 등록)"""
    DatabaseRegistry.clear()

    db = await SQLiteDatabase.create('default', {
        'path': str(tmp_path / 'retry.db'),
        'pool': {'pool_size': 3},
    })
    DatabaseRegistry.register(db)

    yield db
    await DatabaseRegistry.close_all()


@pytest_asyncio.fixture
async def store(database):
    return SQLiteOperationStore(database)
