# app/workflows/activities/order.py
# 订单处理 Activity
#
# 功能说明：
# OrderProcessingWorkflow 调用的所有外部操作：
# - notify                   发送通知（尽力而为，失败不抛出）
# - reserve_inventory        检查库存
# - request_approval         创建待审批记录
# - handle_approval_timeout  审批超时处理
# - process_payment          扣款
# - update_inventory         扣减库存
# - refund_payment           退款（库存扣减失败后的补偿）
#
# 依赖通过构造函数注入（见 OrderActivities.__init__），
# Worker 注册的是绑定后的方法：activities=[acts.notify, acts.reserve_inventory, ...]
#
# 幂等性（Temporal 保证至少执行一次）：
# - request_approval 重试时发现自己创建的 pending 记录，直接返回成功
# - handle_approval_timeout 使用条件更新，重复执行无副作用
# - process_payment / update_inventory / refund_payment 以订单 ID 为键去重
#
# 失败语义：
# - 业务失败（库存不足、支付被拒）转换为 non_retryable 的 ApplicationError
# - 存储暂不可用等错误原样抛出，由 Temporal 的 RetryPolicy 重试

from typing import Optional

from temporalio import activity
from temporalio.exceptions import ApplicationError

from app.core.exceptions import ConflictError, UpstreamFailureError
from app.services.approval_store import ApprovalStore
from app.services.inventory_service import InventoryService
from app.services.notification_service import NotificationService
from app.services.payment_service import PaymentService
from app.workflows.types import (
    ApprovalActivityResult,
    ApprovalPayload,
    ApprovalStatus,
    InventoryRequest,
    InventoryResult,
    Notification,
    PaymentRequest,
)

# ApplicationError.type，工作流据此区分失败原因
UPSTREAM_FAILURE = "UpstreamFailure"


class OrderActivities:
    """订单处理 Activity 集合"""

    def __init__(
        self,
        approvals: Optional[ApprovalStore] = None,
        inventory: Optional[InventoryService] = None,
        payments: Optional[PaymentService] = None,
        notifier: Optional[NotificationService] = None,
    ):
        self.approvals = approvals or ApprovalStore()
        self.inventory = inventory or InventoryService()
        self.payments = payments or PaymentService()
        self.notifier = notifier or NotificationService()

    @activity.defn(name="notify")
    async def notify(self, notification: Notification) -> None:
        """发送通知，失败只记录警告"""
        try:
            await self.notifier.notify(notification.message)
        except Exception as e:
            activity.logger.warning(f"通知发送失败: {e}")

    @activity.defn(name="reserve_inventory")
    async def reserve_inventory(self, request: InventoryRequest) -> InventoryResult:
        ok = await self.inventory.reserve(request.request_id, request.item_name, request.quantity)
        available = await self.inventory.available(request.item_name)
        return InventoryResult(success=ok, item_name=request.item_name, available=available)

    @activity.defn(name="request_approval")
    async def request_approval(self, payload: ApprovalPayload) -> ApprovalActivityResult:
        """
        创建待审批记录

        重试场景：上一次执行已经写入了记录但没来得及返回，
        这里查到 pending 记录后视为成功。
        """
        try:
            approval = await self.approvals.create_pending(
                payload.order_id,
                payload.order_name,
                payload.total_cost,
                payload.quantity,
            )
        except ConflictError:
            approval = await self.approvals.get(payload.order_id)
            if approval.status != ApprovalStatus.PENDING.value:
                raise ApplicationError(
                    f"Approval request for order {payload.order_id} is already {approval.status}",
                    type="ApprovalConflict",
                    non_retryable=True,
                )
            activity.logger.info(f"审批请求已存在，沿用: order_id={payload.order_id}")

        activity.logger.info(
            f"已请求审批: order_id={payload.order_id}, {payload.quantity}x {payload.order_name} "
            f"at ${payload.total_cost}, expires_at={approval.expires_at.isoformat()}"
        )
        return ApprovalActivityResult(
            success=True,
            message="Approval request created",
            status=approval.status,
        )

    @activity.defn(name="handle_approval_timeout")
    async def handle_approval_timeout(self, order_id: str) -> ApprovalActivityResult:
        """
        审批超时处理

        只有记录仍为 pending 时才会标记为 timed_out。
        如果审批人已经抢先做了决定（信号还没送达），返回该决定，工作流据此继续。
        """
        approval = await self.approvals.mark_timed_out(order_id)

        if approval is None:
            return ApprovalActivityResult(
                success=False,
                message="Approval already processed or not found",
            )

        if approval.status == ApprovalStatus.TIMED_OUT.value:
            activity.logger.warning(f"订单 {order_id} 审批超时，释放预留库存")
            return ApprovalActivityResult(
                success=False,
                message="Approval timed out",
                status=approval.status,
                comments=approval.comments,
            )

        return ApprovalActivityResult(
            success=False,
            message="Approval already processed or not found",
            status=approval.status,
            processed_by=approval.processed_by,
            comments=approval.comments,
        )

    @activity.defn(name="process_payment")
    async def process_payment(self, request: PaymentRequest) -> None:
        activity.logger.info(
            f"处理支付: {request.request_id}, {request.quantity}x {request.item_name}, ${request.amount}"
        )
        try:
            await self.payments.charge(
                request.request_id,
                request.item_name,
                request.quantity,
                request.amount,
            )
        except UpstreamFailureError as e:
            raise ApplicationError(str(e), type=UPSTREAM_FAILURE, non_retryable=True) from e

    @activity.defn(name="update_inventory")
    async def update_inventory(self, request: PaymentRequest) -> None:
        activity.logger.info(
            f"扣减库存: {request.request_id}, {request.quantity}x {request.item_name}"
        )
        try:
            await self.inventory.commit(
                request.request_id,
                request.item_name,
                request.quantity,
                request.amount,
            )
        except UpstreamFailureError as e:
            raise ApplicationError(str(e), type=UPSTREAM_FAILURE, non_retryable=True) from e

    @activity.defn(name="refund_payment")
    async def refund_payment(self, request: PaymentRequest) -> bool:
        return await self.payments.refund(request.request_id)

    def all(self) -> list:
        """Worker 注册用的 Activity 列表"""
        return [
            self.notify,
            self.reserve_inventory,
            self.request_approval,
            self.handle_approval_timeout,
            self.process_payment,
            self.update_inventory,
            self.refund_payment,
        ]
