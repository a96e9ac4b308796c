# app/workflows/definitions/__init__.py
# Workflow 定义模块
#
# Workflow 代码必须是确定性的：
# - 不能直接获取当前时间（用 workflow.now()）
# - 不能直接做 I/O 操作（用 Activity）
# - 不能使用全局可变状态

from app.workflows.definitions.order_processing import (
    APPROVAL_SIGNAL,
    OrderProcessingWorkflow,
)

__all__ = [
    "APPROVAL_SIGNAL",
    "OrderProcessingWorkflow",
]
