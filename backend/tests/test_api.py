# tests/test_api.py
# HTTP API 测试
#
# 使用 httpx.AsyncClient + ASGITransport 直接调用应用（不触发 lifespan），
# 通过 app.dependency_overrides 注入临时数据库上的审批存储和假的工作流客户端。

from datetime import timedelta
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_approval_store, get_order_client
from app.core.exceptions import ConflictError, NotFoundError
from app.main import app
from app.services.approval_store import ApprovalStore
from app.workflows.types import ApprovalDecision, OrderPayload


class FakeOrderClient:
    """内存中的订单工作流客户端"""

    def __init__(self):
        self.orders: dict[str, OrderPayload] = {}
        self.signals: list[tuple[str, ApprovalDecision]] = []
        self.fail_signals = False

    async def start_order(self, order: OrderPayload, order_id: Optional[str] = None) -> str:
        instance_id = order_id or f"generated-{len(self.orders) + 1}"
        if instance_id in self.orders:
            raise ConflictError(f"Order {instance_id} already exists")
        self.orders[instance_id] = order
        return instance_id

    async def get_status(self, order_id: str) -> dict:
        if order_id not in self.orders:
            raise NotFoundError(f"Order {order_id} not found")
        return {
            "instance_id": order_id,
            "runtime_status": "RUNNING",
            "stage": "awaiting_approval",
            "processed": None,
        }

    async def signal_decision(self, order_id: str, decision: ApprovalDecision) -> None:
        if self.fail_signals:
            raise RuntimeError("temporal unavailable")
        self.signals.append((order_id, decision))


@pytest.fixture
def order_client():
    return FakeOrderClient()


@pytest.fixture
async def api_client(approval_store, order_client):
    """创建测试用 API 客户端"""
    app.dependency_overrides[get_approval_store] = lambda: approval_store
    app.dependency_overrides[get_order_client] = lambda: order_client

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ==================== 订单 ====================

class TestOrdersAPI:

    async def test_create_order(self, api_client, order_client):
        response = await api_client.post(
            "/api/orders",
            json={"name": "Widget", "total_cost": 1500, "quantity": 2, "order_id": "order-1"},
        )

        assert response.status_code == 202
        assert response.json() == {"instance_id": "order-1"}
        assert order_client.orders["order-1"] == OrderPayload("Widget", 1500.0, 2)

    async def test_create_order_generates_id(self, api_client):
        response = await api_client.post("/api/orders", json={"name": "Paperclips", "total_cost": 5})

        assert response.status_code == 202
        assert response.json()["instance_id"] == "generated-1"

    async def test_duplicate_order(self, api_client):
        payload = {"name": "Widget", "total_cost": 1500, "quantity": 2, "order_id": "order-1"}
        await api_client.post("/api/orders", json=payload)

        response = await api_client.post("/api/orders", json=payload)

        assert response.status_code == 409
        assert response.json()["detail"] == "Order order-1 already exists"

    @pytest.mark.parametrize("payload", [
        {"name": "Widget", "total_cost": 10, "quantity": 0},
        {"name": "Widget", "total_cost": -1},
        {"name": "", "total_cost": 10},
        {"total_cost": 10},
        {"name": "Widget", "total_cost": 10, "order_id": "bad id"},
    ])
    async def test_invalid_order(self, api_client, order_client, payload):
        response = await api_client.post("/api/orders", json=payload)

        assert response.status_code == 422
        assert order_client.orders == {}

    async def test_get_order_status(self, api_client):
        await api_client.post("/api/orders", json={"name": "Widget", "total_cost": 1500, "order_id": "order-1"})

        response = await api_client.get("/api/orders/order-1")

        assert response.status_code == 200
        assert response.json() == {
            "instance_id": "order-1",
            "runtime_status": "RUNNING",
            "stage": "awaiting_approval",
            "processed": None,
        }

    async def test_get_unknown_order(self, api_client):
        response = await api_client.get("/api/orders/missing")
        assert response.status_code == 404


# ==================== 审批 ====================

class TestApprovalsAPI:

    async def test_list_pending(self, api_client, approval_store):
        await approval_store.create_pending("order-1", "Widget", 1500.0, 2)
        await approval_store.create_pending("order-2", "Cars", 15000.0, 1)
        await approval_store.create_pending("order-3", "Computers", 2000.0, 4)
        await approval_store.record_decision("order-3", approved=True, actor="mgr")

        response = await api_client.get("/api/approvals")

        assert response.status_code == 200
        assert {a["order_id"] for a in response.json()} == {"order-1", "order-2"}

    async def test_get_approval(self, api_client, approval_store):
        await approval_store.create_pending("order-1", "Widget", 1500.0, 2)

        response = await api_client.get("/api/approvals/order-1")

        assert response.status_code == 200
        body = response.json()
        assert body["order_id"] == "order-1"
        assert body["status"] == "pending"
        assert body["quantity"] == 2

    async def test_get_missing_approval(self, api_client):
        response = await api_client.get("/api/approvals/missing")

        assert response.status_code == 404
        assert response.json()["detail"] == "Approval request for order missing not found"

    async def test_approve(self, api_client, approval_store, order_client):
        """批准：更新记录并向工作流发送信号"""
        await approval_store.create_pending("order-1", "Widget", 1500.0, 2)

        response = await api_client.post(
            "/api/approvals/order-1/approve",
            json={"approved_by": "mgr", "comments": "ok"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Order order-1 has been approved"
        assert body["approval"]["status"] == "approved"
        assert body["approval"]["processed_by"] == "mgr"
        assert body["approval"]["comments"] == "ok"
        assert order_client.signals == [("order-1", ApprovalDecision(True, "mgr", "ok"))]

    async def test_reject_without_body(self, api_client, approval_store, order_client):
        await approval_store.create_pending("order-1", "Widget", 1500.0, 2)

        response = await api_client.post("/api/approvals/order-1/reject")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Order order-1 has been rejected"
        assert body["approval"]["status"] == "rejected"
        assert body["approval"]["processed_by"] == "Unknown"
        assert order_client.signals[0][1].approved is False

    async def test_decide_twice(self, api_client, approval_store, order_client):
        await approval_store.create_pending("order-1", "Widget", 1500.0, 2)
        await api_client.post("/api/approvals/order-1/reject", json={"approved_by": "mgr"})

        response = await api_client.post("/api/approvals/order-1/approve", json={"approved_by": "other"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Approval request is already rejected"
        assert len(order_client.signals) == 1

    async def test_approve_missing(self, api_client, order_client):
        response = await api_client.post("/api/approvals/missing/approve")

        assert response.status_code == 404
        assert order_client.signals == []

    async def test_approve_expired(self, session_maker, order_client):
        """审批窗口已过：400，记录变为 timed_out，不发送信号"""
        store = ApprovalStore(session_maker=session_maker, approval_window=timedelta(seconds=-1))
        await store.create_pending("order-1", "Widget", 1500.0, 2)

        app.dependency_overrides[get_approval_store] = lambda: store
        app.dependency_overrides[get_order_client] = lambda: order_client
        try:
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                response = await client.post("/api/approvals/order-1/approve", json={"approved_by": "mgr"})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 400
        assert response.json()["detail"] == "Approval request has expired"
        assert (await store.get("order-1")).status == "timed_out"
        assert order_client.signals == []

    async def test_signal_failure(self, api_client, approval_store, order_client):
        """信号发送失败：500，但决定已经保存"""
        await approval_store.create_pending("order-1", "Widget", 1500.0, 2)
        order_client.fail_signals = True

        response = await api_client.post("/api/approvals/order-1/approve", json={"approved_by": "mgr"})

        assert response.status_code == 500
        body = response.json()
        assert body["detail"] == "Failed to process approval decision"
        assert body["approval"]["status"] == "approved"
        assert (await approval_store.get("order-1")).status == "approved"


# ==================== 健康检查 ====================

async def test_health(api_client):
    response = await api_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
