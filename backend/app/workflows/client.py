# app/workflows/client.py
# Temporal Client 模块
#
# 功能说明：
# 1. 提供 Temporal Client 连接管理（单例）
# 2. 封装订单工作流的操作：启动、查询状态、发送审批信号
#
# 使用方法：
#   from app.workflows.client import order_workflow_client
#
#   order_id = await order_workflow_client.start_order(OrderPayload("Widget", 1500.0, 2))
#   status = await order_workflow_client.get_status(order_id)
#   await order_workflow_client.signal_decision(order_id, ApprovalDecision(True, "mgr", "ok"))

import uuid
from typing import Callable, Optional

from temporalio.client import (
    Client,
    WorkflowExecutionStatus,
    WorkflowHandle,
)
from temporalio.common import WorkflowIDReusePolicy
from temporalio.exceptions import WorkflowAlreadyStartedError
from temporalio.service import RPCError, RPCStatusCode

from app.core.config import settings
from app.core.exceptions import (
    ConflictError,
    NotFoundError,
    TransientUnavailableError,
    ValidationError,
)
from app.core.logging import get_logger
from app.workflows.definitions.order_processing import OrderProcessingWorkflow
from app.workflows.types import ApprovalDecision, ApprovalPolicy, OrderPayload

# 获取 logger
logger = get_logger(__name__)

# 全局 Client 实例
# 使用单例模式避免创建多个连接
_client: Optional[Client] = None


async def get_temporal_client() -> Client:
    """
    获取 Temporal Client 实例（单例模式）

    首次调用时会创建连接，后续调用返回已有连接。

    Raises:
        Exception: 连接 Temporal Server 失败时抛出
    """
    global _client

    if _client is None:
        logger.info(f"连接 Temporal Server: {settings.TEMPORAL_HOST}")
        _client = await Client.connect(
            settings.TEMPORAL_HOST,
            namespace=settings.TEMPORAL_NAMESPACE,
        )
        logger.info("Temporal Client 连接成功")

    return _client


async def close_temporal_client():
    """
    关闭 Temporal Client 连接

    在应用关闭时调用。
    """
    global _client

    if _client is not None:
        # Temporal Python SDK 的 Client 没有显式的 close 方法
        # 将引用置空让 GC 处理
        _client = None
        logger.info("Temporal Client 已关闭")


def default_policy() -> ApprovalPolicy:
    """根据配置生成审批策略"""
    return ApprovalPolicy(
        threshold=settings.APPROVAL_THRESHOLD,
        timeout_hours=settings.APPROVAL_TIMEOUT_HOURS,
    )


class OrderWorkflowClient:
    """
    订单工作流客户端

    工作流 ID 就是订单 ID。
    client_factory 默认使用全局单例，测试时可以传入 WorkflowEnvironment 的 client。
    """

    def __init__(
        self,
        client_factory=get_temporal_client,
        task_queue: Optional[str] = None,
        policy_factory: Callable[[], ApprovalPolicy] = default_policy,
    ):
        self._client_factory = client_factory
        self.task_queue = task_queue or settings.TEMPORAL_TASK_QUEUE
        self._policy_factory = policy_factory

    async def _handle(self, order_id: str) -> WorkflowHandle:
        client = await self._client_factory()
        return client.get_workflow_handle(order_id)

    async def start_order(self, order: OrderPayload, order_id: Optional[str] = None) -> str:
        """
        启动订单工作流

        Args:
            order: 订单数据
            order_id: 订单 ID（可选，默认生成 UUID）

        Returns:
            str: 工作流实例 ID（即订单 ID）

        Raises:
            ValidationError: 订单数据不合法
            ConflictError: 该订单 ID 已经提交过
        """
        if not order.name or not order.name.strip():
            raise ValidationError("Order name is required")
        if order.quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        if order.total_cost < 0:
            raise ValidationError("Total cost must not be negative")

        workflow_id = order_id or str(uuid.uuid4())
        client = await self._client_factory()

        logger.info(f"启动订单工作流: {workflow_id}")
        logger.info(f"  订单: {order.quantity}x {order.name}, ${order.total_cost}")
        logger.info(f"  Task Queue: {self.task_queue}")

        try:
            await client.start_workflow(
                OrderProcessingWorkflow.run,
                args=[order, self._policy_factory()],
                id=workflow_id,
                task_queue=self.task_queue,
                id_reuse_policy=WorkflowIDReusePolicy.REJECT_DUPLICATE,
            )
        except WorkflowAlreadyStartedError as e:
            logger.warning(f"订单已存在: {workflow_id}")
            raise ConflictError(f"Order {workflow_id} already exists") from e
        except RPCError as e:
            logger.error(f"启动订单工作流失败: {workflow_id}, {e}")
            raise TransientUnavailableError(f"Failed to start order {workflow_id}") from e

        logger.info(f"订单工作流已启动: {workflow_id}")
        return workflow_id

    async def get_status(self, order_id: str) -> dict:
        """
        查询订单工作流状态

        Returns:
            dict: {instance_id, runtime_status, stage, processed}

        Raises:
            NotFoundError: 工作流不存在
        """
        handle = await self._handle(order_id)

        try:
            description = await handle.describe()
        except RPCError as e:
            if e.status == RPCStatusCode.NOT_FOUND:
                raise NotFoundError(f"Order {order_id} not found") from e
            raise

        status = {
            "instance_id": order_id,
            "runtime_status": description.status.name if description.status else "UNKNOWN",
            "stage": None,
            "processed": None,
        }

        try:
            state = await handle.query(OrderProcessingWorkflow.get_status)
            status["stage"] = state.get("stage")
            status["processed"] = state.get("processed")
        except RPCError as e:
            # 没有 Worker 在线时查询会失败，只返回执行状态
            logger.warning(f"查询工作流状态失败: {order_id}, {e}")

        if description.status == WorkflowExecutionStatus.COMPLETED and status["processed"] is None:
            result = await handle.result()
            status["processed"] = result.processed
            status["stage"] = status["stage"] or result.outcome

        return status

    async def signal_decision(self, order_id: str, decision: ApprovalDecision) -> None:
        """向订单工作流发送审批信号"""
        handle = await self._handle(order_id)

        logger.info(f"发送审批信号: {order_id}, approved={decision.approved}, by={decision.actor}")
        await handle.signal(OrderProcessingWorkflow.approval_received, decision)
        logger.info("信号发送成功")


# 全局实例
order_workflow_client = OrderWorkflowClient()
