"""
Admin API 테스트

테스트 항목:
1. 오퍼레이션 등록 / 조회 / 목록 (페이징, 필터)
2. 단건 처리 / 일괄 처리
3. 취소 (409 / 404), 주문 단위 취소
4. failed 재등록 / 멈춘 오퍼레이션 복구
5. 통계 / 헬스 체크
6. 존재하지 않는 리소스 404 에러

실행: python -m pytest test/admin_test.py -v
"""

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from admin.api.router.api import router
from admin.main import create_app
from retry.base import ExecutorRegistry
from retry.exception import PermanentExecutionError
from retry.manager import RetryManager
from retry.model import OperationStatus, RetryConfig


@pytest_asyncio.fixture
async def manager(store):
    """실제 시계를 쓰는 RetryManager (notification_send 성공, order_creation 영구 실패)"""
    registry = ExecutorRegistry()

    async def send(subject_id, payload):
        return {"notification_id": f"notif-{subject_id}"}

    async def create(subject_id, payload):
        raise PermanentExecutionError("Invalid SKU")

    registry.register("notification_send", send)
    registry.register("order_creation", create)
    return RetryManager(store, registry, RetryConfig(max_retries=3))


@pytest_asyncio.fixture
async def app(manager):
    """테스트용 FastAPI 앱 (lifespan 없이 router만 연결)"""
    test_app = FastAPI()
    test_app.include_router(router)
    test_app.state.retry_manager = manager
    return test_app


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def schedule(client, type="notification_send", subject_id="order-1", immediate=False, payload=None):
    response = await client.post("/api/operations", json={
        "type": type,
        "subject_id": subject_id,
        "payload": payload or {},
        "immediate": immediate,
    })
    assert response.status_code == 201
    return response.json()


class TestOperationAPI:
    """오퍼레이션 등록 / 조회 테스트"""

    @pytest.mark.asyncio
    async def test_schedule_deferred(self, client):
        data = await schedule(client, payload={"type": "order_shipped"})

        assert data["status"] == "pending"
        assert data["attempts"] == 0
        assert data["payload"] == {"type": "order_shipped"}
        assert data["next_retry_at"] is not None

    @pytest.mark.asyncio
    async def test_schedule_immediate(self, client):
        data = await schedule(client, immediate=True)

        assert data["status"] == "completed"
        assert data["attempts"] == 1
        assert data["result"] == {"notification_id": "notif-order-1"}

    @pytest.mark.asyncio
    async def test_schedule_validation(self, client):
        response = await client.post("/api/operations", json={"type": "", "subject_id": "order-1"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_get_operation(self, client):
        created = await schedule(client)

        response = await client.get(f"/api/operations/{created['id']}")
        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    @pytest.mark.asyncio
    async def test_get_nonexistent_operation(self, client):
        response = await client.get("/api/operations/missing")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_operations(self, client):
        for i in range(3):
            await schedule(client, subject_id="order-1")
        await schedule(client, subject_id="order-2", type="order_creation", immediate=True)

        response = await client.get("/api/operations", params={"page": 1, "size": 2})
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 4
        assert data["pages"] == 2
        assert len(data["items"]) == 2

        response = await client.get("/api/operations", params={"subject_id": "order-1"})
        assert response.json()["total"] == 3

        response = await client.get("/api/operations", params={"status": "failed"})
        items = response.json()["items"]
        assert [item["subject_id"] for item in items] == ["order-2"]
        assert items[0]["last_error"] == "Invalid SKU"

        response = await client.get("/api/operations", params={"type": "order_creation"})
        assert response.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_list_invalid_status(self, client):
        response = await client.get("/api/operations", params={"status": "unknown"})
        assert response.status_code == 422


class TestProcessAPI:
    """처리 API 테스트"""

    @pytest.mark.asyncio
    async def test_process_single(self, client):
        created = await schedule(client)

        response = await client.post(f"/api/operations/{created['id']}/process")
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["operation"]["status"] == "completed"

    @pytest.mark.asyncio
    async def test_process_nonexistent(self, client):
        response = await client.post("/api/operations/missing/process")
        assert response.status_code == 200
        assert response.json() == {"success": False, "operation": None}

    @pytest.mark.asyncio
    async def test_process_pending_nothing_due(self, client):
        await schedule(client)

        response = await client.post("/api/operations/process-pending")
        assert response.status_code == 200
        assert response.json() == {"processed": 0, "failed": 0, "skipped": 0}


class TestCancelAPI:
    """취소 API 테스트"""

    @pytest.mark.asyncio
    async def test_cancel(self, client):
        created = await schedule(client)

        response = await client.post(f"/api/operations/{created['id']}/cancel")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "cancelled"
        assert data["cancelled_at"] is not None

    @pytest.mark.asyncio
    async def test_cancel_completed_conflict(self, client):
        created = await schedule(client, immediate=True)

        response = await client.post(f"/api/operations/{created['id']}/cancel")
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_cancel_nonexistent(self, client):
        response = await client.post("/api/operations/missing/cancel")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_cancel_subject(self, client):
        await schedule(client, subject_id="order-9")
        await schedule(client, subject_id="order-9")
        await schedule(client, subject_id="order-9", immediate=True)

        response = await client.post("/api/subjects/order-9/cancel")
        assert response.status_code == 200
        assert response.json() == {"subject_id": "order-9", "cancelled": 2}


class TestMaintenanceAPI:
    """운영 API 테스트"""

    @pytest.mark.asyncio
    async def test_requeue_failed(self, client, manager):
        failed = await schedule(client, type="order_creation", immediate=True)
        assert failed["status"] == "failed"

        response = await client.post("/api/operations/requeue-failed", json={"delay_minutes": 0})
        assert response.status_code == 200
        requeued = response.json()["requeued"]
        assert len(requeued) == 1

        operation = await manager.get_operation(requeued[0])
        assert operation.retry_of == failed["id"]
        assert operation.status == OperationStatus.PENDING

    @pytest.mark.asyncio
    async def test_recover_stuck_nothing(self, client):
        response = await client.post("/api/operations/recover-stuck", params={"stuck_after_minutes": 5})
        assert response.status_code == 200
        assert response.json() == {"recovered": 0}


class TestStatsAPI:
    """통계 / 헬스 API 테스트"""

    @pytest.mark.asyncio
    async def test_stats(self, client):
        await schedule(client, immediate=True)
        await schedule(client, type="order_creation", immediate=True)
        await schedule(client)

        response = await client.get("/api/stats", params={"hours": 1})
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert data["completed"] == 1
        assert data["failed"] == 1
        assert data["pending"] == 1
        assert data["success_rate"] == 50.0

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert {m["name"] for m in data["metrics"]} == {
            "critical_failures", "overdue_operations", "stuck_operations",
        }


class TestHealthCheck:
    """헬스 체크 테스트"""

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "executors": ["notification_send", "order_creation"],
        }

    @pytest.mark.asyncio
    async def test_ready(self, client):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    @pytest.mark.asyncio
    async def test_manager_not_initialized(self):
        app = FastAPI()
        app.include_router(router)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/api/operations")
        assert response.status_code == 503


class TestCreateApp:
    """create_app 테스트"""

    @pytest.mark.asyncio
    async def test_uses_given_manager(self, manager):
        app = create_app(config={"admin": {"cors": {"origins": ["http://localhost:3000"]}}}, manager=manager)

        async with app.router.lifespan_context(app):
            assert app.state.retry_manager is manager
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
                response = await ac.get("/health")
        assert response.status_code == 200
