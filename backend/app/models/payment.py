# app/models/payment.py
# 支付流水模型
#
# 每个订单最多一条支付记录：
#   charged  - 已扣款
#   refunded - 已退款（库存扣减失败后的补偿）

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, Float, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class Payment(Base):
    """支付流水表，主键为订单 ID，保证扣款/退款幂等"""

    __tablename__ = "payments"

    order_id: Mapped[str] = mapped_column(
        String(100),
        primary_key=True,
        comment="订单 ID",
    )
    item_name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="charged",
        comment="状态: charged | refunded",
    )
    charged_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
    )
    refunded_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<Payment {self.order_id} {self.amount} ({self.status})>"
