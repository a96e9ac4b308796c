# tests/test_approval_gateway.py
# 审批网关测试：先写存储，再发信号

import pytest

from app.core.exceptions import ApprovalConflictError, NotFoundError, SignalDeliveryError
from app.services.approval_gateway import ApprovalGateway
from app.workflows.types import ApprovalDecision, ApprovalStatus


class RecordingSignaler:
    """记录收到的信号，可配置为发送失败"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[tuple[str, ApprovalDecision]] = []

    async def __call__(self, order_id: str, decision: ApprovalDecision) -> None:
        self.calls.append((order_id, decision))
        if self.fail:
            raise RuntimeError("temporal unavailable")


class TestApprovalGateway:

    async def test_approve_signals_workflow(self, approval_store):
        """批准后向工作流发送信号，信号携带审批人和意见"""
        await approval_store.create_pending("order-1", "Widget", 1500.0, 2)
        signaler = RecordingSignaler()
        gateway = ApprovalGateway(approval_store, signaler)

        approval = await gateway.decide("order-1", approved=True, actor="mgr", comments="ok")

        assert approval.status == ApprovalStatus.APPROVED.value
        assert signaler.calls == [("order-1", ApprovalDecision(approved=True, actor="mgr", comments="ok"))]

    async def test_reject_without_actor(self, approval_store):
        """未提供审批人时信号中也使用 Unknown"""
        await approval_store.create_pending("order-1", "Widget", 1500.0, 2)
        signaler = RecordingSignaler()
        gateway = ApprovalGateway(approval_store, signaler)

        await gateway.decide("order-1", approved=False)

        order_id, decision = signaler.calls[0]
        assert decision.approved is False
        assert decision.actor == "Unknown"

    async def test_store_rejection_does_not_signal(self, approval_store):
        """存储拒绝决定时不发送信号"""
        await approval_store.create_pending("order-1", "Widget", 1500.0, 2)
        await approval_store.record_decision("order-1", approved=True, actor="mgr")
        signaler = RecordingSignaler()
        gateway = ApprovalGateway(approval_store, signaler)

        with pytest.raises(ApprovalConflictError):
            await gateway.decide("order-1", approved=False, actor="other")
        with pytest.raises(NotFoundError):
            await gateway.decide("missing", approved=True)

        assert signaler.calls == []

    async def test_signal_failure_keeps_decision(self, approval_store):
        """信号发送失败：返回 500，但决定已经落库，不回滚"""
        await approval_store.create_pending("order-1", "Widget", 1500.0, 2)
        gateway = ApprovalGateway(approval_store, RecordingSignaler(fail=True))

        with pytest.raises(SignalDeliveryError) as exc_info:
            await gateway.decide("order-1", approved=True, actor="mgr")

        error = exc_info.value
        assert error.status_code == 500
        assert error.message == "Failed to process approval decision"
        assert error.approval["status"] == ApprovalStatus.APPROVED.value
        assert error.to_dict()["approval"]["processed_by"] == "mgr"

        assert (await approval_store.get("order-1")).status == ApprovalStatus.APPROVED.value
