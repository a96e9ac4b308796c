# app/services/inventory_service.py
# 库存服务
#
# 功能说明：
# 1. reserve - 检查库存是否足够（只读，不锁定库存）
# 2. commit  - 扣减库存（按订单幂等）
# 3. restock - 补齐库存（启动时写入默认库存）
#
# 使用方法：
#   from app.services.inventory_service import InventoryService
#   inventory = InventoryService()
#   ok = await inventory.reserve("order-1", "Cars", 2)

from typing import Iterable, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database import async_session_maker
from app.core.exceptions import UpstreamFailureError
from app.core.logging import get_logger
from app.models.inventory import InventoryCommit, InventoryItem

logger = get_logger(__name__)


# 默认库存（名称, 单价, 数量）
DEFAULT_INVENTORY: list[tuple[str, float, int]] = [
    ("Paperclips", 5.0, 100),
    ("Cars", 15000.0, 100),
    ("Computers", 500.0, 100),
]


class InsufficientInventoryError(UpstreamFailureError):
    """库存不足或商品不存在"""

    def __init__(self, item_name: str, requested: int, available: int):
        super().__init__(
            f"Insufficient inventory for {item_name}: requested {requested}, available {available}"
        )
        self.item_name = item_name
        self.requested = requested
        self.available = available


class InventoryService:
    """基于数据库的库存服务"""

    def __init__(self, session_maker: Optional[async_sessionmaker[AsyncSession]] = None):
        self.session_maker = session_maker or async_session_maker

    async def available(self, item_name: str) -> int:
        """查询当前库存数量，商品不存在时返回 0"""
        async with self.session_maker() as session:
            item = await session.get(InventoryItem, item_name)
            return item.quantity if item else 0

    async def reserve(self, request_id: str, item_name: str, quantity: int) -> bool:
        """
        检查库存是否足够

        Returns:
            bool: 库存足够返回 True
        """
        available = await self.available(item_name)
        ok = available >= quantity
        logger.info(
            f"库存检查: request_id={request_id}, item={item_name}, "
            f"requested={quantity}, available={available}, ok={ok}"
        )
        return ok

    async def commit(
        self,
        request_id: str,
        item_name: str,
        quantity: int,
        cost: Optional[float] = None,
    ) -> None:
        """
        扣减库存

        同一个 request_id 只扣减一次；扣减和记录在同一个事务中完成。

        Raises:
            InsufficientInventoryError: 库存不足或商品不存在
        """
        async with self.session_maker() as session:
            async with session.begin():
                if await session.get(InventoryCommit, request_id) is not None:
                    logger.info(f"库存已扣减过，跳过: request_id={request_id}")
                    return

                result = await session.execute(
                    update(InventoryItem)
                    .where(
                        InventoryItem.name == item_name,
                        InventoryItem.quantity >= quantity,
                    )
                    .values(quantity=InventoryItem.quantity - quantity)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    item = await session.get(InventoryItem, item_name)
                    raise InsufficientInventoryError(
                        item_name, quantity, item.quantity if item else 0
                    )

                session.add(
                    InventoryCommit(
                        request_id=request_id,
                        item_name=item_name,
                        quantity=quantity,
                        cost=cost,
                    )
                )

        logger.info(f"库存已扣减: request_id={request_id}, item={item_name}, quantity={quantity}")

    async def restock(
        self,
        items: Iterable[tuple[str, float, int]] = DEFAULT_INVENTORY,
    ) -> None:
        """
        补齐库存：商品不存在则创建，已存在则把数量重置为给定值
        """
        async with self.session_maker() as session:
            async with session.begin():
                for name, per_item_cost, quantity in items:
                    item = await session.get(InventoryItem, name)
                    if item is None:
                        session.add(
                            InventoryItem(name=name, per_item_cost=per_item_cost, quantity=quantity)
                        )
                    else:
                        item.per_item_cost = per_item_cost
                        item.quantity = quantity
                    logger.info(f"补齐库存: {name} x{quantity} @ ${per_item_cost}")
