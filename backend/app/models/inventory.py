# app/models/inventory.py
# 库存模型
#
# 功能说明：
# 1. InventoryItem - 商品库存
# 2. InventoryCommit - 已扣减的订单记录（保证扣减幂等）
#
# 使用方法：
#   from app.models.inventory import InventoryItem, InventoryCommit

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, Float, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class InventoryItem(Base):
    """商品库存表，按商品名称索引"""

    __tablename__ = "inventory_items"

    name: Mapped[str] = mapped_column(
        String(200),
        primary_key=True,
        comment="商品名称",
    )
    per_item_cost: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
        comment="单价",
    )
    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="当前库存数量",
    )

    def __repr__(self) -> str:
        return f"<InventoryItem {self.name} x{self.quantity}>"


class InventoryCommit(Base):
    """
    库存扣减记录

    Activity 可能被 Temporal 重复执行，扣减前先检查这张表，
    同一个 request_id 只扣减一次。
    """

    __tablename__ = "inventory_commits"

    request_id: Mapped[str] = mapped_column(
        String(100),
        primary_key=True,
        comment="订单 ID",
    )
    item_name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    committed_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
    )
