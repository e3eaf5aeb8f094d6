"""
Retry 엔진 관련 예외 클래스 정의
"""


class RetryError(Exception):
    """Retry 엔진 기본 예외"""
    pass


class OperationNotFoundError(RetryError):
    """오퍼레이션을 찾을 수 없음"""
    def __init__(self, operation_id: str):
        self.operation_id = operation_id
        self.message = f"Operation not found: {operation_id}"
        super().__init__(self.message)


class DuplicateOperationError(RetryError):
    """동일 id의 오퍼레이션이 이미 존재"""
    def __init__(self, operation_id: str):
        self.operation_id = operation_id
        self.message = f"Operation already exists: {operation_id}"
        super().__init__(self.message)


class OperationConflictError(RetryError):
    """낙관적 동시성 검사 실패 (다른 워커가 먼저 상태를 변경함)"""
    def __init__(self, operation_id: str, expected_status: str | None, actual_status: str):
        self.operation_id = operation_id
        self.expected_status = expected_status
        self.actual_status = actual_status
        self.message = (
            f"Operation {operation_id} was modified concurrently "
            f"(expected={expected_status}, actual={actual_status})"
        )
        super().__init__(self.message)


class InvalidTransitionError(RetryError):
    """허용되지 않은 상태 전이"""
    def __init__(self, operation_id: str, current_status: str, target_status: str):
        self.operation_id = operation_id
        self.current_status = current_status
        self.target_status = target_status
        self.message = (
            f"Cannot move operation {operation_id} from '{current_status}' to '{target_status}'"
        )
        super().__init__(self.message)


class UnknownOperationTypeError(RetryError):
    """등록되지 않은 오퍼레이션 타입 (배포/와이어링 결함)"""
    def __init__(self, operation_type: str):
        self.operation_type = operation_type
        self.message = f"UnknownOperationType: {operation_type}"
        super().__init__(self.message)


class ExecutionError(RetryError):
    """실행기 실패 (재시도 대상)"""
    pass


class PermanentExecutionError(ExecutionError):
    """재시도해도 성공할 수 없는 실패 (즉시 failed 처리)"""
    pass
