"""
SQLite 기반 Operation Store

여러 워커 프로세스가 같은 DB 파일을 공유할 수 있습니다.
쓰기 트랜잭션은 BEGIN IMMEDIATE로 시작하므로 조건부 UPDATE(compare-and-swap)가 원자적으로 수행됩니다.
"""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from database.sqlite3 import SQLiteDatabase
from retry.exception import (
    DuplicateOperationError,
    InvalidTransitionError,
    OperationConflictError,
    OperationNotFoundError,
)
from retry.model.operation import OperationStatus, RetryableOperation, can_transition
from retry.store.base import OperationStore

logger = logging.getLogger(__name__)

SQL_PATH = Path(__file__).parent / "sql" / "operations.sql"

# update_status()로 갱신 가능한 컬럼
PATCHABLE_FIELDS = frozenset({
    'status',
    'attempts',
    'last_attempt_at',
    'next_retry_at',
    'last_error',
    'result',
    'completed_at',
    'failed_at',
    'cancelled_at',
})

_TIMESTAMP_FIELDS = frozenset({
    'last_attempt_at',
    'next_retry_at',
    'created_at',
    'completed_at',
    'failed_at',
    'cancelled_at',
})


def to_db_timestamp(value: datetime | None) -> str | None:
    """UTC ISO-8601 문자열 (마이크로초 고정 자릿수, 문자열 비교 = 시간 비교)"""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec='microseconds')


def _to_json(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    return json.dumps(value, default=str)


def _to_db_value(field: str, value: Any) -> Any:
    if field in _TIMESTAMP_FIELDS:
        return to_db_timestamp(value)
    if field == 'result':
        return _to_json(value)
    if isinstance(value, Enum):
        return value.value
    return value


class SQLiteOperationStore(OperationStore):
    """retry_operations 테이블 저장소"""

    def __init__(self, db: SQLiteDatabase):
        self._db = db
        self._queries = db.load_queries('retry_operations', str(SQL_PATH))

    async def insert(self, operation: RetryableOperation) -> None:
        async with self._db.transaction() as tx:
            try:
                await self._queries.insert_operation(
                    tx.connection,
                    id=operation.id,
                    type=operation.type,
                    subject_id=operation.subject_id,
                    payload=json.dumps(operation.payload, default=str),
                    attempts=operation.attempts,
                    status=operation.status.value,
                    last_attempt_at=to_db_timestamp(operation.last_attempt_at),
                    next_retry_at=to_db_timestamp(operation.next_retry_at),
                    last_error=operation.last_error,
                    result=_to_json(operation.result),
                    retry_of=operation.retry_of,
                    created_at=to_db_timestamp(operation.created_at),
                    completed_at=to_db_timestamp(operation.completed_at),
                    failed_at=to_db_timestamp(operation.failed_at),
                    cancelled_at=to_db_timestamp(operation.cancelled_at),
                )
            except sqlite3.IntegrityError as e:
                raise DuplicateOperationError(operation.id) from e
        logger.debug(f"Inserted operation: id={operation.id}, type={operation.type}")

    async def get_by_id(self, operation_id: str) -> RetryableOperation:
        async with self._db.transaction(readonly=True) as tx:
            row = await self._queries.get_operation_by_id(tx.connection, id=operation_id)
        if row is None:
            raise OperationNotFoundError(operation_id)
        return RetryableOperation.from_row(row)

    async def update_status(
        self,
        operation_id: str,
        patch: dict[str, Any],
        expected_status: OperationStatus | None = None,
        expected_attempts: int | None = None,
    ) -> RetryableOperation:
        unknown = set(patch) - PATCHABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {sorted(unknown)}")
        if not patch:
            raise ValueError("Empty patch")

        # 컬럼명은 PATCHABLE_FIELDS 화이트리스트로 제한됨
        assignments = ', '.join(f"{field} = ?" for field in patch)
        params = [_to_db_value(field, value) for field, value in patch.items()]
        sql = f"UPDATE retry_operations SET {assignments} WHERE id = ?"
        params.append(operation_id)

        if expected_status is not None:
            sql += " AND status = ?"
            params.append(OperationStatus(expected_status).value)
        if expected_attempts is not None:
            sql += " AND attempts = ?"
            params.append(expected_attempts)

        async with self._db.transaction() as tx:
            if 'status' in patch:
                await self._check_transition(tx, operation_id, patch['status'], expected_status)
            cursor = await tx.execute(sql, tuple(params))
            updated = cursor.rowcount
            await cursor.close()
            row = await self._queries.get_operation_by_id(tx.connection, id=operation_id)
            if row is None:
                raise OperationNotFoundError(operation_id)
            if updated == 0:
                raise OperationConflictError(
                    operation_id,
                    OperationStatus(expected_status).value if expected_status is not None else None,
                    row['status'],
                )
        return RetryableOperation.from_row(row)

    async def _check_transition(
        self,
        tx,
        operation_id: str,
        target: OperationStatus,
        expected_status: OperationStatus | None,
    ) -> None:
        """ALLOWED_TRANSITIONS에 없는 상태 전이 거부 (expected_status가 없으면 저장된 상태 기준)"""
        target = OperationStatus(target)
        if expected_status is not None:
            current = OperationStatus(expected_status)
        else:
            row = await self._queries.get_operation_by_id(tx.connection, id=operation_id)
            if row is None:
                raise OperationNotFoundError(operation_id)
            current = OperationStatus(row['status'])
        if not can_transition(current, target):
            raise InvalidTransitionError(operation_id, current.value, target.value)

    async def query_due(self, now: datetime, limit: int | None = None) -> list[RetryableOperation]:
        async with self._db.transaction(readonly=True) as tx:
            rows = await self._queries.get_due_operations(
                tx.connection,
                now=to_db_timestamp(now),
                limit=limit if limit is not None else -1,
            )
        return [RetryableOperation.from_row(row) for row in rows]

    async def count_by_status(self, since: datetime) -> dict[OperationStatus, int]:
        async with self._db.transaction(readonly=True) as tx:
            rows = await self._queries.count_operations_by_status(
                tx.connection, since=to_db_timestamp(since)
            )
        counts = {status: 0 for status in OperationStatus}
        for row in rows:
            counts[OperationStatus(row['status'])] = row['cnt']
        return counts

    async def average_attempts(self, since: datetime) -> float | None:
        async with self._db.transaction(readonly=True) as tx:
            row = await self._queries.get_average_attempts(
                tx.connection, since=to_db_timestamp(since)
            )
        if row is None or row['avg_attempts'] is None:
            return None
        return float(row['avg_attempts'])

    async def health_counts(
        self,
        since: datetime,
        overdue_before: datetime,
        stuck_before: datetime,
    ) -> dict[str, int]:
        async with self._db.transaction(readonly=True) as tx:
            row = await self._queries.get_health_counts(
                tx.connection,
                since=to_db_timestamp(since),
                overdue_before=to_db_timestamp(overdue_before),
                stuck_before=to_db_timestamp(stuck_before),
            )
        return {
            'critical_failures': row['critical_failures'],
            'overdue_operations': row['overdue_operations'],
            'stuck_operations': row['stuck_operations'],
        }

    async def list_operations(
        self,
        status: OperationStatus | None = None,
        subject_id: str | None = None,
        operation_type: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[RetryableOperation]:
        async with self._db.transaction(readonly=True) as tx:
            rows = await self._queries.list_operations(
                tx.connection,
                status=OperationStatus(status).value if status is not None else None,
                subject_id=subject_id,
                type=operation_type,
                limit=limit,
                offset=offset,
            )
        return [RetryableOperation.from_row(row) for row in rows]

    async def count_operations(
        self,
        status: OperationStatus | None = None,
        subject_id: str | None = None,
        operation_type: str | None = None,
    ) -> int:
        async with self._db.transaction(readonly=True) as tx:
            row = await self._queries.count_operations(
                tx.connection,
                status=OperationStatus(status).value if status is not None else None,
                subject_id=subject_id,
                type=operation_type,
            )
        return row['cnt'] if row else 0

    async def query_stuck(self, before: datetime) -> list[RetryableOperation]:
        async with self._db.transaction(readonly=True) as tx:
            rows = await self._queries.get_stuck_operations(
                tx.connection, before=to_db_timestamp(before)
            )
        return [RetryableOperation.from_row(row) for row in rows]

    async def cancel_pending_for_subject(self, subject_id: str, now: datetime) -> int:
        async with self._db.transaction() as tx:
            affected = await self._queries.cancel_pending_for_subject(
                tx.connection, subject_id=subject_id, now=to_db_timestamp(now)
            )
        return affected

    async def query_requeue_candidates(
        self,
        since: datetime,
        operation_type: str | None = None,
    ) -> list[RetryableOperation]:
        async with self._db.transaction(readonly=True) as tx:
            rows = await self._queries.get_requeue_candidates(
                tx.connection, since=to_db_timestamp(since), type=operation_type
            )
        return [RetryableOperation.from_row(row) for row in rows]
