# app/schemas/order.py
# 订单数据验证模式

from typing import Optional

from pydantic import BaseModel, Field


class OrderCreate(BaseModel):
    """
    创建订单请求模式

    用于 POST /api/orders 接口
    """
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="商品名称",
        examples=["Widget"],
    )
    total_cost: float = Field(
        ...,
        ge=0,
        description="订单总额",
        examples=[1500.0],
    )
    quantity: int = Field(
        1,
        ge=1,
        description="数量",
        examples=[2],
    )
    order_id: Optional[str] = Field(
        None,
        min_length=1,
        max_length=100,
        pattern=r"^[A-Za-z0-9_\-.:]+$",
        description="订单 ID（可选，不传则自动生成）；同一个 ID 只能提交一次",
    )


class OrderAcceptedResponse(BaseModel):
    """订单已受理（工作流异步执行）"""
    instance_id: str = Field(..., description="工作流实例 ID（即订单 ID）")


class OrderStatusResponse(BaseModel):
    """订单工作流状态"""
    instance_id: str = Field(..., description="工作流实例 ID")
    runtime_status: str = Field(..., description="Temporal 执行状态，如 RUNNING / COMPLETED")
    stage: Optional[str] = Field(None, description="订单所处阶段")
    processed: Optional[bool] = Field(None, description="订单是否处理成功（结束后才有值）")
