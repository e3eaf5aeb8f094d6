"""Operation Store 패키지"""

from retry.store.base import OperationStore
from retry.store.sqlite import SQLiteOperationStore, to_db_timestamp

__all__ = [
    'OperationStore',
    'SQLiteOperationStore',
    'to_db_timestamp',
]
