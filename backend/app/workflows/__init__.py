# app/workflows/__init__.py
# Temporal 工作流模块
#
# 目录结构：
# workflows/
# ├── __init__.py          # 模块初始化
# ├── types.py             # 共享数据类型（沙箱安全）
# ├── worker.py            # Temporal Worker（运行 Workflow 和 Activity）
# ├── client.py            # Temporal Client（启动、查询订单工作流，发送审批信号）
# ├── activities/
# │   └── order.py         # 订单相关 Activity（库存、支付、审批、通知）
# └── definitions/
#     └── order_processing.py  # 订单处理工作流
#
# ⚠️ 重要：Temporal Sandbox 限制
# 此 __init__.py 不导入任何会触发非确定性操作的模块。
# Temporal Sandbox 在验证 Workflow 时会导入此模块，
# 如果导入链中包含 pydantic-settings、sqlalchemy 等会失败。
#
# 使用方式：
# - worker 和 client 应该直接从各自模块导入：
#   from app.workflows.worker import create_worker, run_worker
#   from app.workflows.client import order_workflow_client

from app.workflows.types import (
    OrderPayload,
    OrderResult,
    OrderStage,
    ApprovalPolicy,
    ApprovalStatus,
    ApprovalDecision,
)

__all__ = [
    "OrderPayload",
    "OrderResult",
    "OrderStage",
    "ApprovalPolicy",
    "ApprovalStatus",
    "ApprovalDecision",
]
