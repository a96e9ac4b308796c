# app/api/approvals.py
# 审批 API
#
# 功能说明：
# 审批人查看待审批订单，并批准或拒绝。
# 批准 / 拒绝会先更新审批记录，再向订单工作流发送信号。
#
# 路由：
#   GET  /api/approvals                       待审批列表（最新的在前）
#   GET  /api/approvals/{order_id}            审批详情
#   POST /api/approvals/{order_id}/approve    批准
#   POST /api/approvals/{order_id}/reject     拒绝
#
# 错误：
#   404 审批记录不存在
#   400 已经处理过 / 已过期
#   500 决定已记录，但工作流信号发送失败

from typing import Optional

from fastapi import APIRouter, Body, Depends

from app.api.deps import get_approval_gateway, get_approval_store
from app.core.logging import get_logger
from app.schemas.approval import (
    ApprovalDecisionRequest,
    ApprovalDecisionResponse,
    ApprovalRequestResponse,
)
from app.services.approval_gateway import ApprovalGateway
from app.services.approval_store import ApprovalStore

logger = get_logger(__name__)

router = APIRouter(prefix="/api/approvals", tags=["审批"])


@router.get("", response_model=list[ApprovalRequestResponse], summary="待审批列表")
async def list_pending_approvals(
    store: ApprovalStore = Depends(get_approval_store),
):
    return await store.list_pending()


@router.get("/{order_id}", response_model=ApprovalRequestResponse, summary="审批详情")
async def get_approval(
    order_id: str,
    store: ApprovalStore = Depends(get_approval_store),
):
    return await store.get(order_id)


async def _decide(
    gateway: ApprovalGateway,
    order_id: str,
    approved: bool,
    data: Optional[ApprovalDecisionRequest],
) -> ApprovalDecisionResponse:
    data = data or ApprovalDecisionRequest()
    logger.info(
        f"审批决定: order_id={order_id}, approved={approved}, by={data.approved_by or 'Unknown'}"
    )

    approval = await gateway.decide(
        order_id,
        approved=approved,
        actor=data.approved_by,
        comments=data.comments,
    )
    return ApprovalDecisionResponse(
        message=f"Order {order_id} has been {'approved' if approved else 'rejected'}",
        approval=ApprovalRequestResponse.model_validate(approval),
    )


@router.post("/{order_id}/approve", response_model=ApprovalDecisionResponse, summary="批准订单")
async def approve_order(
    order_id: str,
    data: Optional[ApprovalDecisionRequest] = Body(None),
    gateway: ApprovalGateway = Depends(get_approval_gateway),
):
    """批准订单，请求体可省略"""
    return await _decide(gateway, order_id, True, data)


@router.post("/{order_id}/reject", response_model=ApprovalDecisionResponse, summary="拒绝订单")
async def reject_order(
    order_id: str,
    data: Optional[ApprovalDecisionRequest] = Body(None),
    gateway: ApprovalGateway = Depends(get_approval_gateway),
):
    """拒绝订单，请求体可省略"""
    return await _decide(gateway, order_id, False, data)
