# tests/test_approval_store.py
# 审批存储测试

from datetime import datetime, timedelta

import pytest

from app.core.exceptions import (
    ApprovalConflictError,
    ConflictError,
    ExpiredError,
    NotFoundError,
)
from app.services.approval_store import ApprovalStore
from app.workflows.types import ApprovalStatus


class FakeClock:
    """可手动拨动的时钟"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 1, 15, 9, 0, 0))


@pytest.fixture
def store(session_maker, clock):
    return ApprovalStore(
        session_maker=session_maker,
        approval_window=timedelta(hours=24),
        clock=clock,
    )


class TestCreateAndGet:
    """创建和查询"""

    async def test_create_pending(self, store, clock):
        """新记录为 pending，过期时间 = 创建时间 + 审批窗口"""
        approval = await store.create_pending("order-1", "Widget", 1500.0, 2)

        assert approval.status == ApprovalStatus.PENDING.value
        assert approval.created_at == clock.now
        assert approval.expires_at == clock.now + timedelta(hours=24)
        assert approval.processed_at is None
        assert approval.processed_by is None

        loaded = await store.get("order-1")
        assert loaded.order_name == "Widget"
        assert loaded.total_cost == 1500.0
        assert loaded.quantity == 2

    async def test_create_twice_conflicts(self, store):
        """同一个订单不能重复创建，已有记录保持不变"""
        await store.create_pending("order-1", "Widget", 1500.0, 2)
        await store.record_decision("order-1", approved=True, actor="mgr")

        with pytest.raises(ConflictError):
            await store.create_pending("order-1", "Widget", 1500.0, 2)

        assert (await store.get("order-1")).status == ApprovalStatus.APPROVED.value

    async def test_get_missing(self, store):
        with pytest.raises(NotFoundError) as exc_info:
            await store.get("missing")
        assert exc_info.value.message == "Approval request for order missing not found"


class TestListPending:
    """待审批列表"""

    async def test_only_pending_newest_first(self, store, clock):
        await store.create_pending("order-1", "Widget", 1500.0, 1)
        clock.advance(minutes=1)
        await store.create_pending("order-2", "Cars", 15000.0, 1)
        clock.advance(minutes=1)
        await store.create_pending("order-3", "Computers", 2000.0, 4)
        await store.record_decision("order-2", approved=False, actor="mgr")

        pending = await store.list_pending()

        assert [a.order_id for a in pending] == ["order-3", "order-1"]

    async def test_empty(self, store):
        assert await store.list_pending() == []

    async def test_query_failure_returns_empty(self, db_engine, session_maker, clock):
        """数据库不可用时返回空列表"""
        from app.core.database import Base

        async with db_engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

        store = ApprovalStore(session_maker=session_maker, clock=clock)
        assert await store.list_pending() == []


class TestRecordDecision:
    """记录审批决定"""

    async def test_approve(self, store, clock):
        """Widget / 1500 批准：pending → approved，记录审批人和意见"""
        await store.create_pending("order-1", "Widget", 1500.0, 2)
        clock.advance(hours=1)

        approval = await store.record_decision("order-1", approved=True, actor="mgr", comments="ok")

        assert approval.status == ApprovalStatus.APPROVED.value
        assert approval.processed_by == "mgr"
        assert approval.comments == "ok"
        assert approval.processed_at == clock.now

    async def test_reject_without_actor(self, store):
        """未提供审批人时记为 Unknown"""
        await store.create_pending("order-1", "Widget", 1500.0, 2)

        approval = await store.record_decision("order-1", approved=False)

        assert approval.status == ApprovalStatus.REJECTED.value
        assert approval.processed_by == "Unknown"
        assert approval.comments is None

    async def test_second_decision_conflicts(self, store):
        """第二次决定被拒绝，第一次的结果保持不变"""
        await store.create_pending("order-1", "Widget", 1500.0, 2)
        await store.record_decision("order-1", approved=True, actor="mgr")

        with pytest.raises(ApprovalConflictError) as exc_info:
            await store.record_decision("order-1", approved=False, actor="other")

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Approval request is already approved"

        approval = await store.get("order-1")
        assert approval.status == ApprovalStatus.APPROVED.value
        assert approval.processed_by == "mgr"

    async def test_missing(self, store):
        with pytest.raises(NotFoundError):
            await store.record_decision("missing", approved=True)

    async def test_expired(self, store, clock):
        """超过审批窗口后做决定：ExpiredError，记录变为 timed_out"""
        await store.create_pending("order-1", "Widget", 1500.0, 2)
        clock.advance(hours=24, seconds=1)

        with pytest.raises(ExpiredError) as exc_info:
            await store.record_decision("order-1", approved=True, actor="mgr")
        assert exc_info.value.message == "Approval request has expired"

        approval = await store.get("order-1")
        assert approval.status == ApprovalStatus.TIMED_OUT.value
        assert approval.processed_by is None
        assert approval.comments == "Approval request timed out after 24 hours"

    async def test_exactly_at_expiry_is_accepted(self, store, clock):
        await store.create_pending("order-1", "Widget", 1500.0, 2)
        clock.advance(hours=24)

        approval = await store.record_decision("order-1", approved=True, actor="mgr")
        assert approval.status == ApprovalStatus.APPROVED.value


class TestMarkTimedOut:
    """超时处理与审批决定的竞争"""

    async def test_pending_becomes_timed_out(self, store):
        await store.create_pending("order-1", "Widget", 1500.0, 2)

        approval = await store.mark_timed_out("order-1")

        assert approval.status == ApprovalStatus.TIMED_OUT.value
        assert approval.comments == "Approval request timed out after 24 hours"
        assert approval.processed_at is not None

    async def test_timeout_then_decision(self, store):
        """超时先到：之后的决定被拒绝"""
        await store.create_pending("order-1", "Widget", 1500.0, 2)
        await store.mark_timed_out("order-1")

        with pytest.raises(ApprovalConflictError) as exc_info:
            await store.record_decision("order-1", approved=True, actor="mgr")
        assert exc_info.value.status == ApprovalStatus.TIMED_OUT.value

    async def test_decision_then_timeout(self, store):
        """决定先到：超时处理不会覆盖决定"""
        await store.create_pending("order-1", "Widget", 1500.0, 2)
        await store.record_decision("order-1", approved=False, actor="mgr", comments="too expensive")

        approval = await store.mark_timed_out("order-1")

        assert approval.status == ApprovalStatus.REJECTED.value
        assert approval.processed_by == "mgr"
        assert approval.comments == "too expensive"

    async def test_repeated_timeout_is_noop(self, store):
        await store.create_pending("order-1", "Widget", 1500.0, 2)
        first = await store.mark_timed_out("order-1")
        second = await store.mark_timed_out("order-1")

        assert second.status == ApprovalStatus.TIMED_OUT.value
        assert second.processed_at == first.processed_at

    async def test_missing(self, store):
        assert await store.mark_timed_out("missing") is None
