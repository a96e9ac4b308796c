# app/schemas/approval.py
# 审批数据验证模式
#
# 命名规范：
# - XxxRequest: 请求体
# - XxxResponse: 返回数据

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ApprovalRequestResponse(BaseModel):
    """审批记录"""
    model_config = ConfigDict(from_attributes=True)

    order_id: str = Field(..., description="订单 ID")
    order_name: str = Field(..., description="商品名称")
    total_cost: float = Field(..., description="订单总额")
    quantity: int = Field(..., description="数量")
    status: str = Field(..., description="pending | approved | rejected | timed_out")
    created_at: datetime = Field(..., description="创建时间（UTC）")
    expires_at: datetime = Field(..., description="过期时间（UTC）")
    processed_at: Optional[datetime] = Field(None, description="处理时间")
    processed_by: Optional[str] = Field(None, description="审批人")
    comments: Optional[str] = Field(None, description="审批意见")


class ApprovalDecisionRequest(BaseModel):
    """
    批准 / 拒绝请求体

    用于 POST /api/approvals/{order_id}/approve 和 /reject，
    请求体可以省略。
    """
    approved_by: Optional[str] = Field(
        None,
        max_length=100,
        description="审批人",
        examples=["mgr"],
    )
    comments: Optional[str] = Field(
        None,
        description="审批意见或拒绝原因",
        examples=["ok"],
    )


class ApprovalDecisionResponse(BaseModel):
    """批准 / 拒绝结果"""
    message: str = Field(..., description="操作结果消息")
    approval: ApprovalRequestResponse
