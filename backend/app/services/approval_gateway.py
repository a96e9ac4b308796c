# app/services/approval_gateway.py
# 审批网关
#
# 功能说明：
# 审批人批准 / 拒绝订单时的完整处理：
# 1. 在 ApprovalStore 中记录决定（条件更新）
# 2. 向等待中的订单工作流发送 approval_received 信号
#
# 失败语义：
# 信号发送失败时，审批决定已经落库，不会回滚；
# 抛出 SignalDeliveryError（HTTP 500），提示调用方工作流可能不会立即恢复。
# 工作流在超时处理时会读取已落库的决定，因此不会丢失。

from typing import Awaitable, Callable, Optional

from app.core.exceptions import SignalDeliveryError
from app.core.logging import get_logger
from app.models.approval import ApprovalRequest
from app.schemas.approval import ApprovalRequestResponse
from app.services.approval_store import ApprovalStore
from app.workflows.types import ApprovalDecision

logger = get_logger(__name__)

# 信号发送函数：(order_id, decision) -> None
DecisionSignaler = Callable[[str, ApprovalDecision], Awaitable[None]]


class ApprovalGateway:
    """审批决定入口：先写存储，再通知工作流"""

    def __init__(self, store: ApprovalStore, signaler: DecisionSignaler):
        self.store = store
        self.signaler = signaler

    async def decide(
        self,
        order_id: str,
        approved: bool,
        actor: Optional[str] = None,
        comments: Optional[str] = None,
    ) -> ApprovalRequest:
        """
        处理审批决定

        Raises:
            NotFoundError / ApprovalConflictError / ExpiredError: 来自 ApprovalStore
            SignalDeliveryError: 决定已记录，但信号发送失败
        """
        approval = await self.store.record_decision(order_id, approved, actor, comments)

        decision = ApprovalDecision(
            approved=approved,
            actor=approval.processed_by,
            comments=comments,
        )
        try:
            await self.signaler(order_id, decision)
        except Exception as e:
            logger.error(f"发送审批信号失败: order_id={order_id}, error={e}")
            raise SignalDeliveryError(
                order_id,
                approval=ApprovalRequestResponse.model_validate(approval).model_dump(mode="json"),
            ) from e

        logger.info(
            f"审批决定已送达工作流: order_id={order_id}, "
            f"decision={'approved' if approved else 'rejected'}, by={approval.processed_by}"
        )
        return approval
