"""Admin API 라우터 (모든 API 통합)"""

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from admin.api.model import (
    OperationResponse,
    PageResponse,
    ProcessResponse,
    RecoverResponse,
    RequeueRequest,
    RequeueResponse,
    ScheduleRequest,
    SubjectCancelResponse,
)
from retry.exception import InvalidTransitionError, OperationNotFoundError
from retry.manager import RetryManager
from retry.model import BatchResult, HealthReport, OperationStatus, RetryStats

logger = logging.getLogger(__name__)

router = APIRouter()


def get_manager(request: Request) -> RetryManager:
    """앱 상태에 등록된 RetryManager"""
    manager = getattr(request.app.state, 'retry_manager', None)
    if manager is None:
        raise HTTPException(status_code=503, detail="Retry manager is not initialized")
    return manager


async def _get_operation_or_404(manager: RetryManager, operation_id: str) -> OperationResponse:
    try:
        operation = await manager.get_operation(operation_id)
    except OperationNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    return OperationResponse.model_validate(operation)


# ============================================
# OPERATION API
# ============================================

@router.get("/api/operations", response_model=PageResponse[OperationResponse], tags=["Operation"])
async def get_operations(
    page: int = Query(default=1, ge=1, description="페이지 번호"),
    size: int = Query(default=20, ge=1, le=100, description="페이지 크기"),
    status: OperationStatus | None = Query(default=None, description="상태 필터"),
    subject_id: str | None = Query(default=None, description="주문 id 필터"),
    type: str | None = Query(default=None, description="오퍼레이션 타입 필터"),
    manager: RetryManager = Depends(get_manager),
):
    """오퍼레이션 목록 조회 (최근 생성순)"""
    items, total = await manager.list_operations(
        status=status,
        subject_id=subject_id,
        operation_type=type,
        page=page,
        size=size,
    )
    return PageResponse[OperationResponse].create(
        items=[OperationResponse.model_validate(op) for op in items],
        total=total,
        page=page,
        size=size,
    )


@router.post("/api/operations", response_model=OperationResponse, status_code=201, tags=["Operation"])
async def schedule_operation(
    request: ScheduleRequest,
    manager: RetryManager = Depends(get_manager),
):
    """오퍼레이션 등록 (immediate=true면 바로 처리)"""
    operation_id = await manager.schedule_operation(
        request.type,
        request.subject_id,
        request.payload,
        immediate=request.immediate,
    )
    return await _get_operation_or_404(manager, operation_id)


@router.post("/api/operations/process-pending", response_model=BatchResult, tags=["Operation"])
async def process_pending(
    limit: int | None = Query(default=None, ge=1, description="최대 처리 건수"),
    manager: RetryManager = Depends(get_manager),
):
    """실행 시각이 된 pending 오퍼레이션 일괄 처리"""
    return await manager.process_pending_batch(limit)


@router.post("/api/operations/requeue-failed", response_model=RequeueResponse, tags=["Operation"])
async def requeue_failed(
    request: RequeueRequest,
    manager: RetryManager = Depends(get_manager),
):
    """최근 failed 오퍼레이션 재등록"""
    requeued = await manager.requeue_failed_operations(
        operation_type=request.type,
        max_age=timedelta(hours=request.max_age_hours),
        delay=timedelta(minutes=request.delay_minutes),
    )
    return RequeueResponse(requeued=requeued)


@router.post("/api/operations/recover-stuck", response_model=RecoverResponse, tags=["Operation"])
async def recover_stuck(
    stuck_after_minutes: float = Query(default=30.0, gt=0, description="processing 유지 허용 시간"),
    manager: RetryManager = Depends(get_manager),
):
    """processing 상태로 멈춘 오퍼레이션 복구"""
    recovered = await manager.recover_stuck_operations(timedelta(minutes=stuck_after_minutes))
    return RecoverResponse(recovered=recovered)


@router.get("/api/operations/{operation_id}", response_model=OperationResponse, tags=["Operation"])
async def get_operation(operation_id: str, manager: RetryManager = Depends(get_manager)):
    """오퍼레이션 상세 조회"""
    return await _get_operation_or_404(manager, operation_id)


@router.post("/api/operations/{operation_id}/process", response_model=ProcessResponse, tags=["Operation"])
async def process_operation(operation_id: str, manager: RetryManager = Depends(get_manager)):
    """오퍼레이션 1건 즉시 처리"""
    success = await manager.process_operation(operation_id)
    try:
        operation = OperationResponse.model_validate(await manager.get_operation(operation_id))
    except OperationNotFoundError:
        operation = None
    return ProcessResponse(success=success, operation=operation)


@router.post("/api/operations/{operation_id}/cancel", response_model=OperationResponse, tags=["Operation"])
async def cancel_operation(operation_id: str, manager: RetryManager = Depends(get_manager)):
    """pending 오퍼레이션 취소"""
    try:
        cancelled = await manager.cancel_operation(operation_id)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=e.message)
    if not cancelled:
        raise HTTPException(status_code=404, detail=f"Operation not found: {operation_id}")
    return await _get_operation_or_404(manager, operation_id)


@router.post("/api/subjects/{subject_id}/cancel", response_model=SubjectCancelResponse, tags=["Operation"])
async def cancel_subject_operations(subject_id: str, manager: RetryManager = Depends(get_manager)):
    """주문의 pending 오퍼레이션 전체 취소"""
    cancelled = await manager.cancel_operations_for_subject(subject_id)
    return SubjectCancelResponse(subject_id=subject_id, cancelled=cancelled)


# ============================================
# STATS API
# ============================================

@router.get("/api/stats", response_model=RetryStats, tags=["Stats"])
async def get_stats(
    hours: float = Query(default=24.0, gt=0, le=24 * 90, description="집계 기간 (시간)"),
    manager: RetryManager = Depends(get_manager),
):
    """최근 N시간 상태별 집계"""
    window_start = datetime.now(timezone.utc) - timedelta(hours=hours)
    return await manager.get_stats(window_start)


@router.get("/api/health", response_model=HealthReport, tags=["Stats"])
async def get_health(manager: RetryManager = Depends(get_manager)):
    """Retry 시스템 헬스 체크 (실패 누적 / 지연 / 멈춤)"""
    return await manager.get_health()


# ============================================
# Health Check
# ============================================

@router.get("/health", tags=["Health"])
async def health_check(request: Request):
    """서버 상태 확인 (liveness probe)"""
    manager = getattr(request.app.state, 'retry_manager', None)
    return {
        "status": "healthy",
        "executors": manager.registry.types() if manager else [],
    }


@router.get("/ready", tags=["Health"])
async def ready_check(manager: RetryManager = Depends(get_manager)):
    """저장소 연결 상태 확인 (readiness probe)"""
    try:
        await manager.list_operations(size=1)
        return {"status": "ready", "database": "ok"}
    except Exception as e:
        logger.warning(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "not ready", "error": str(e)}
        )
