# app/services/payment_service.py
# 支付服务（模拟）
#
# 不对接真实支付渠道，只在 payments 表中记录扣款 / 退款流水。
# 扣款和退款都以订单 ID 为键，Activity 重试时不会重复扣款。

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database import async_session_maker
from app.core.exceptions import UpstreamFailureError
from app.core.logging import get_logger
from app.models.payment import Payment

logger = get_logger(__name__)


class PaymentService:
    """模拟支付服务"""

    def __init__(self, session_maker: Optional[async_sessionmaker[AsyncSession]] = None):
        self.session_maker = session_maker or async_session_maker

    async def charge(self, request_id: str, item_name: str, quantity: int, amount: float) -> None:
        """
        扣款

        Raises:
            UpstreamFailureError: 金额非法，或该订单已经退款
        """
        if amount < 0:
            raise UpstreamFailureError(f"Invalid payment amount {amount} for order {request_id}")

        async with self.session_maker() as session:
            async with session.begin():
                existing = await session.get(Payment, request_id)
                if existing is not None:
                    if existing.status == "refunded":
                        raise UpstreamFailureError(f"Payment for order {request_id} was already refunded")
                    logger.info(f"订单已扣款，跳过: request_id={request_id}")
                    return

                session.add(
                    Payment(
                        order_id=request_id,
                        item_name=item_name,
                        quantity=quantity,
                        amount=amount,
                        status="charged",
                    )
                )

        logger.info(f"扣款成功: request_id={request_id}, {quantity}x {item_name}, amount=${amount}")

    async def refund(self, request_id: str) -> bool:
        """
        退款

        Returns:
            bool: 订单处于已退款状态返回 True；没有扣款记录返回 False
        """
        async with self.session_maker() as session:
            async with session.begin():
                payment = await session.get(Payment, request_id)
                if payment is None:
                    logger.warning(f"没有扣款记录，无法退款: request_id={request_id}")
                    return False
                if payment.status != "refunded":
                    payment.status = "refunded"
                    payment.refunded_at = datetime.now(timezone.utc).replace(tzinfo=None)

        logger.info(f"已退款: request_id={request_id}")
        return True
