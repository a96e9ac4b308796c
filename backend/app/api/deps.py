# app/api/deps.py
# API 依赖注入
#
# 路由通过 Depends 获取服务实例，测试时用 app.dependency_overrides 替换。

from fastapi import Depends

from app.services.approval_gateway import ApprovalGateway
from app.services.approval_store import ApprovalStore
from app.workflows.client import OrderWorkflowClient, order_workflow_client

# 全局审批存储（使用默认数据库会话工厂）
_approval_store = ApprovalStore()


def get_approval_store() -> ApprovalStore:
    return _approval_store


def get_order_client() -> OrderWorkflowClient:
    return order_workflow_client


def get_approval_gateway(
    store: ApprovalStore = Depends(get_approval_store),
    client: OrderWorkflowClient = Depends(get_order_client),
) -> ApprovalGateway:
    """审批网关：先写存储，再向订单工作流发送信号"""
    return ApprovalGateway(store, client.signal_decision)
