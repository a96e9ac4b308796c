# app/api/orders.py
# 订单 API
#
# 路由：
#   POST /api/orders                 提交订单（启动订单工作流，异步执行）
#   GET  /api/orders/{instance_id}   查询订单工作流状态

from fastapi import APIRouter, Depends, status

from app.api.deps import get_order_client
from app.core.logging import get_logger
from app.schemas.order import OrderAcceptedResponse, OrderCreate, OrderStatusResponse
from app.workflows.client import OrderWorkflowClient
from app.workflows.types import OrderPayload

logger = get_logger(__name__)

router = APIRouter(prefix="/api/orders", tags=["订单"])


@router.post(
    "",
    response_model=OrderAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="提交订单",
)
async def create_order(
    data: OrderCreate,
    client: OrderWorkflowClient = Depends(get_order_client),
):
    """
    提交订单

    订单由工作流异步处理，返回的 instance_id 可用于查询状态。
    同一个 order_id 重复提交返回 409。
    """
    instance_id = await client.start_order(
        OrderPayload(name=data.name, total_cost=data.total_cost, quantity=data.quantity),
        order_id=data.order_id,
    )
    return OrderAcceptedResponse(instance_id=instance_id)


@router.get("/{instance_id}", response_model=OrderStatusResponse, summary="查询订单状态")
async def get_order_status(
    instance_id: str,
    client: OrderWorkflowClient = Depends(get_order_client),
):
    return OrderStatusResponse(**await client.get_status(instance_id))
