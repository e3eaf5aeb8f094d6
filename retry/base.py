import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ValidationError

from retry.exception import UnknownOperationTypeError, PermanentExecutionError
from retry.model.operation import OperationType, type_name

__all__ = [
    'BaseExecutor',
    'FunctionExecutor',
    'ExecutorRegistry',
    'ExecutorFunc',
    'UnknownOperationTypeError',
]

ExecutorFunc = Callable[[str, dict[str, Any]], Awaitable[Any]]


class BaseExecutor(ABC):
    """오퍼레이션 실행기 기본 클래스"""

    @abstractmethod
    async def execute(self, subject_id: str, payload: dict[str, Any]) -> Any:
        """
        오퍼레이션 실행 로직

        Args:
            subject_id: 대상 도메인 객체 id (주문 id)
            payload: 오퍼레이션 타입별 데이터

        Returns:
            실행 결과 (retry_operations.result에 JSON으로 저장)

        Raises:
            PermanentExecutionError: 재시도해도 성공할 수 없는 실패
            Exception: 그 외 실패는 모두 재시도 대상
        """
        pass

    async def __call__(self, subject_id: str, payload: dict[str, Any]) -> Any:
        return await self.execute(subject_id, payload)

    @staticmethod
    def parse_payload(model: type[BaseModel], payload: dict[str, Any]):
        """payload 검증 (잘못된 payload는 재시도 대상이 아님)"""
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise PermanentExecutionError(f"Invalid payload: {e}") from e


class FunctionExecutor(BaseExecutor):
    """async 함수를 실행기로 감싸기"""

    def __init__(self, func: ExecutorFunc):
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"Executor function must be async: {func!r}")
        self._func = func

    async def execute(self, subject_id: str, payload: dict[str, Any]) -> Any:
        return await self._func(subject_id, payload)


class ExecutorRegistry:
    """
    오퍼레이션 타입 -> 실행기 매핑

    재시도 정책은 RetryManager가 담당하고, 레지스트리는 조회만 합니다.
    """

    def __init__(self):
        self._executors: dict[str, BaseExecutor] = {}

    def register(self, operation_type: OperationType | str, executor: BaseExecutor | ExecutorFunc) -> None:
        """실행기 등록 (같은 타입은 덮어씀)"""
        if not isinstance(executor, BaseExecutor):
            executor = FunctionExecutor(executor)
        self._executors[type_name(operation_type)] = executor

    def handler(self, operation_type: OperationType | str):
        """실행기 클래스 등록 데코레이터"""
        def decorator(cls):
            self.register(operation_type, cls())
            return cls
        return decorator

    def resolve(self, operation_type: OperationType | str) -> BaseExecutor:
        """실행기 반환 (미등록 타입은 UnknownOperationTypeError)"""
        name = type_name(operation_type)
        if name not in self._executors:
            raise UnknownOperationTypeError(name)
        return self._executors[name]

    def unregister(self, operation_type: OperationType | str) -> None:
        self._executors.pop(type_name(operation_type), None)

    def types(self) -> list[str]:
        """등록된 타입 목록"""
        return sorted(self._executors)

    def __contains__(self, operation_type: object) -> bool:
        return type_name(operation_type) in self._executors

    def __len__(self) -> int:
        return len(self._executors)
