# app/workflows/definitions/order_processing.py
# 订单处理工作流定义
#
# 功能说明：
# 一个订单从提交到完成的完整流程：
# 1. 通知：已收到订单
# 2. 检查库存，不足则结束
# 3. 总额 >= 审批阈值时：创建审批记录，等待审批信号（或超时）
# 4. 扣款
# 5. 扣减库存，失败则退款
# 6. 通知结果
#
# 工作流 ID 就是订单 ID，同一个订单只会有一个工作流实例。
#
# Signals:
#   - approval_received(ApprovalDecision): 审批决定
#
# Queries:
#   - get_status(): 查询当前阶段和审批信息

import asyncio
from datetime import timedelta
from typing import Optional

from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ActivityError

with workflow.unsafe.imports_passed_through():
    from app.workflows.activities.order import OrderActivities
    from app.workflows.types import (
        ApprovalDecision,
        ApprovalPayload,
        ApprovalPolicy,
        ApprovalStatus,
        InventoryRequest,
        Notification,
        OrderPayload,
        OrderResult,
        OrderStage,
        PaymentRequest,
    )


# 审批信号名称（API 网关使用同一个名称发送信号）
APPROVAL_SIGNAL = "approval_received"

# 通用重试策略：业务失败的 ApplicationError 标记为 non_retryable，不会重试
DEFAULT_RETRY_POLICY = RetryPolicy(
    initial_interval=timedelta(seconds=1),
    maximum_interval=timedelta(seconds=30),
    backoff_coefficient=2.0,
    maximum_attempts=3,
)


@workflow.defn
class OrderProcessingWorkflow:
    """
    订单处理工作流

    执行流程：
    1. 通知已收到订单
    2. 检查库存（不足 → insufficient_inventory）
    3. 大额订单等待审批（拒绝 → rejected，超时 → timed_out）
    4. 扣款（失败 → payment_failed）
    5. 扣减库存（失败 → 退款，payment_failed）
    6. 完成（completed）

    每条终止路径只发送一条结果通知。

    使用方法：
        handle = await client.start_workflow(
            OrderProcessingWorkflow.run,
            args=[OrderPayload("Widget", 1500.0, 2), ApprovalPolicy()],
            id="order-123",
            task_queue="order-processing-queue",
        )
        await handle.signal(OrderProcessingWorkflow.approval_received, ApprovalDecision(True, "mgr", "ok"))
        result = await handle.result()
    """

    def __init__(self):
        self._order_id: Optional[str] = None
        self._stage: OrderStage = OrderStage.CREATED
        self._decision: Optional[ApprovalDecision] = None
        self._result: Optional[OrderResult] = None

    # ==================== 主流程 ====================

    @workflow.run
    async def run(self, order: OrderPayload, policy: ApprovalPolicy) -> OrderResult:
        order_id = workflow.info().workflow_id
        self._order_id = order_id
        workflow.logger.info(f"订单工作流启动: {order_id}, {order.quantity}x {order.name}, ${order.total_cost}")

        await self._notify(
            f"Received order {order_id} for {order.quantity} {order.name} at ${order.total_cost}"
        )

        # 1. 检查库存（先于审批判断）
        self._stage = OrderStage.RESERVING_INVENTORY
        inventory = await workflow.execute_activity_method(
            OrderActivities.reserve_inventory,
            InventoryRequest(request_id=order_id, item_name=order.name, quantity=order.quantity),
            start_to_close_timeout=timedelta(seconds=30),
            retry_policy=DEFAULT_RETRY_POLICY,
        )
        if not inventory.success:
            return await self._finish(
                OrderStage.INSUFFICIENT_INVENTORY,
                f"Insufficient inventory for {order.name}",
            )

        # 2. 大额订单审批
        if order.total_cost >= policy.threshold:
            decision = await self._await_approval(order_id, order, policy)

            if decision is None:
                return await self._finish(
                    OrderStage.TIMED_OUT,
                    f"Order {order_id} approval timed out after {policy.timeout_hours:g} hours. "
                    f"Order cancelled and inventory released.",
                )

            if not decision.approved:
                return await self._finish(
                    OrderStage.REJECTED,
                    f"Order {order_id} was rejected by {decision.actor or 'manager'}. "
                    f"Reason: {decision.comments or 'No reason provided'}",
                )

            await self._notify(
                f"Order {order_id} was approved by {decision.actor or 'manager'}. Proceeding with payment..."
            )

        payment = PaymentRequest(
            request_id=order_id,
            item_name=order.name,
            quantity=order.quantity,
            amount=order.total_cost,
        )

        # 3. 扣款
        self._stage = OrderStage.PROCESSING_PAYMENT
        try:
            await workflow.execute_activity_method(
                OrderActivities.process_payment,
                payment,
                start_to_close_timeout=timedelta(seconds=60),
                retry_policy=DEFAULT_RETRY_POLICY,
            )
        except ActivityError as e:
            workflow.logger.error(f"扣款失败: {order_id}, {e.cause or e}")
            return await self._finish(
                OrderStage.PAYMENT_FAILED,
                f"Order {order_id} Failed! Payment could not be processed",
            )

        # 4. 扣减库存，失败则退款
        self._stage = OrderStage.UPDATING_INVENTORY
        try:
            await workflow.execute_activity_method(
                OrderActivities.update_inventory,
                payment,
                start_to_close_timeout=timedelta(seconds=60),
                retry_policy=DEFAULT_RETRY_POLICY,
            )
        except ActivityError as e:
            workflow.logger.error(f"扣减库存失败: {order_id}, {e.cause or e}")
            if await self._refund(payment):
                message = f"Order {order_id} Failed! You are now getting a refund"
            else:
                message = f"Order {order_id} Failed! The refund could not be issued automatically"
            return await self._finish(OrderStage.PAYMENT_FAILED, message)

        return await self._finish(
            OrderStage.COMPLETED,
            f"Order {order_id} has completed!",
            processed=True,
        )

    # ==================== 审批等待 ====================

    async def _await_approval(
        self,
        order_id: str,
        order: OrderPayload,
        policy: ApprovalPolicy,
    ) -> Optional[ApprovalDecision]:
        """
        创建审批记录并等待决定

        Returns:
            ApprovalDecision: 审批决定
            None: 审批超时
        """
        # 先切换阶段再创建记录，记录创建后立即到达的信号也能被接收
        self._stage = OrderStage.AWAITING_APPROVAL

        await workflow.execute_activity_method(
            OrderActivities.request_approval,
            ApprovalPayload(
                order_id=order_id,
                order_name=order.name,
                total_cost=order.total_cost,
                quantity=order.quantity,
            ),
            start_to_close_timeout=timedelta(seconds=30),
            retry_policy=DEFAULT_RETRY_POLICY,
        )

        await self._notify(
            f"Order {order_id} requires approval (${order.total_cost} >= ${policy.threshold}). "
            f"Waiting for manager approval..."
        )

        try:
            await workflow.wait_condition(
                lambda: self._decision is not None,
                timeout=policy.timeout,
            )
        except asyncio.TimeoutError:
            workflow.logger.warning(f"审批超时: {order_id}")
            # 计时器先到：之后到达的信号一律忽略
            self._stage = OrderStage.TIMED_OUT
            outcome = await workflow.execute_activity_method(
                OrderActivities.handle_approval_timeout,
                order_id,
                start_to_close_timeout=timedelta(seconds=30),
                retry_policy=DEFAULT_RETRY_POLICY,
            )

            if outcome.status in (ApprovalStatus.APPROVED.value, ApprovalStatus.REJECTED.value):
                # 审批人已在存储中做了决定，只是信号还没送达，以存储为准
                workflow.logger.info(f"审批决定已落库，按存储结果继续: {order_id} -> {outcome.status}")
                self._decision = ApprovalDecision(
                    approved=outcome.status == ApprovalStatus.APPROVED.value,
                    actor=outcome.processed_by,
                    comments=outcome.comments,
                )
                self._stage = OrderStage.AWAITING_APPROVAL
            else:
                return None

        return self._decision

    # ==================== 辅助方法 ====================

    async def _notify(self, message: str) -> None:
        """发送通知，失败不影响主流程"""
        try:
            await workflow.execute_activity_method(
                OrderActivities.notify,
                Notification(message=message),
                start_to_close_timeout=timedelta(seconds=30),
                retry_policy=DEFAULT_RETRY_POLICY,
            )
        except ActivityError as e:
            workflow.logger.warning(f"发送通知失败: {e}")

    async def _refund(self, payment: PaymentRequest) -> bool:
        try:
            return await workflow.execute_activity_method(
                OrderActivities.refund_payment,
                payment,
                start_to_close_timeout=timedelta(seconds=60),
                retry_policy=DEFAULT_RETRY_POLICY,
            )
        except ActivityError as e:
            workflow.logger.error(f"退款失败: {payment.request_id}, {e.cause or e}")
            return False

    async def _finish(self, stage: OrderStage, message: str, processed: bool = False) -> OrderResult:
        """进入终止阶段：发送唯一一条结果通知并返回结果"""
        self._stage = stage
        await self._notify(message)
        self._result = OrderResult(processed=processed, outcome=stage.value)
        workflow.logger.info(f"订单工作流结束: {self._order_id} -> {stage.value}")
        return self._result

    # ==================== Signal 处理 ====================

    @workflow.signal(name=APPROVAL_SIGNAL)
    def approval_received(self, decision: ApprovalDecision) -> None:
        """审批决定信号，只接收等待期间的第一个决定"""
        if self._stage != OrderStage.AWAITING_APPROVAL or self._decision is not None:
            workflow.logger.warning(
                f"忽略审批信号: order={self._order_id}, stage={self._stage.value}, "
                f"already_decided={self._decision is not None}"
            )
            return

        workflow.logger.info(
            f"收到审批信号: order={self._order_id}, approved={decision.approved}, by={decision.actor}"
        )
        self._decision = decision

    # ==================== Query 处理 ====================

    @workflow.query
    def get_status(self) -> dict:
        """查询当前阶段和审批信息"""
        return {
            "order_id": self._order_id,
            "stage": self._stage.value,
            "processed": self._result.processed if self._result else None,
            "approval": {
                "approved": self._decision.approved,
                "actor": self._decision.actor,
                "comments": self._decision.comments,
            } if self._decision else None,
        }
