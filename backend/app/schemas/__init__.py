# app/schemas/__init__.py
# Pydantic Schema 包
#
# 这个文件用于导出所有 Schema，方便其他模块导入
# 使用方式：from app.schemas import OrderCreate, ApprovalRequestResponse

from app.schemas.order import (
    OrderCreate,
    OrderAcceptedResponse,
    OrderStatusResponse,
)
from app.schemas.approval import (
    ApprovalRequestResponse,
    ApprovalDecisionRequest,
    ApprovalDecisionResponse,
)

__all__ = [
    # Order
    "OrderCreate",
    "OrderAcceptedResponse",
    "OrderStatusResponse",
    # Approval
    "ApprovalRequestResponse",
    "ApprovalDecisionRequest",
    "ApprovalDecisionResponse",
]
