"""
DatabaseRegistry: 이름 기반 데이터베이스 인스턴스 관리

database.yaml 예시:
    databases:
      default:
        type: sqlite
        path: ./data/fulfillu.db
        pool:
          pool_size: 5
"""

import logging
from typing import Any

from database.base import BaseDatabase
from database.exception import DatabaseError
from database.sqlite3 import SQLiteDatabase

logger = logging.getLogger(__name__)

# type 값 -> 구현 클래스
_DATABASE_TYPES: dict[str, type[BaseDatabase]] = {
    'sqlite': SQLiteDatabase,
    'sqlite3': SQLiteDatabase,
}


class DatabaseRegistry:
    """데이터베이스 레지스트리 (프로세스 단위)"""

    _databases: dict[str, BaseDatabase] = {}

    @classmethod
    async def init_from_config(cls, config: dict[str, Any], names: list[str] | None = None) -> None:
        """
        설정으로부터 데이터베이스 초기화

        Args:
            config: database.yaml 내용 ('databases' 키 포함)
            names: 초기화할 DB 이름 목록 (None이면 전체)
        """
        databases = config.get('databases', {})
        targets = names if names is not None else list(databases.keys())

        for name in targets:
            if name in cls._databases:
                logger.debug(f"Database '{name}' already initialized, skipping")
                continue
            if name not in databases:
                raise DatabaseError(f"Database '{name}' is not defined in config")

            db_config = databases[name]
            db_type = db_config.get('type', 'sqlite')
            db_class = _DATABASE_TYPES.get(db_type)
            if db_class is None:
                raise DatabaseError(f"Unsupported database type '{db_type}' for '{name}'")

            cls._databases[name] = await db_class.create(name, db_config)
            logger.info(f"Database registered: {name} ({db_type})")

    @classmethod
    def register(cls, db: BaseDatabase) -> None:
        """이미 생성된 인스턴스 등록"""
        cls._databases[db.name] = db

    @classmethod
    def get(cls, name: str = 'default') -> BaseDatabase:
        """이름으로 데이터베이스 조회 (없으면 KeyError)"""
        if name not in cls._databases:
            raise KeyError(f"Database '{name}' is not registered")
        return cls._databases[name]

    @classmethod
    def get_all(cls) -> dict[str, BaseDatabase]:
        return dict(cls._databases)

    @classmethod
    async def close_all(cls) -> None:
        """등록된 모든 데이터베이스 종료"""
        for name, db in list(cls._databases.items()):
            try:
                await db.close()
            except Exception as e:
                logger.error(f"Error closing database '{name}': {e}")
        cls._databases.clear()

    @classmethod
    def clear(cls) -> None:
        """레지스트리 초기화 (연결은 닫지 않음, 테스트용)"""
        cls._databases.clear()


def get_db(name: str = 'default') -> BaseDatabase:
    """등록된 데이터베이스 반환"""
    return DatabaseRegistry.get(name)
