# tests/test_order_services.py
# 库存服务和支付服务测试

import pytest

from app.core.exceptions import UpstreamFailureError
from app.services.inventory_service import DEFAULT_INVENTORY, InsufficientInventoryError


# ==================== 库存 ====================

class TestInventoryService:

    async def test_default_inventory(self, inventory_service):
        for name, _, quantity in DEFAULT_INVENTORY:
            assert await inventory_service.available(name) == quantity

    async def test_reserve(self, inventory_service):
        """reserve 只检查库存，不扣减"""
        assert await inventory_service.reserve("order-1", "Cars", 100) is True
        assert await inventory_service.reserve("order-1", "Cars", 101) is False
        assert await inventory_service.available("Cars") == 100

    async def test_reserve_unknown_item(self, inventory_service):
        assert await inventory_service.reserve("order-1", "Gadget", 1) is False

    async def test_commit_decrements_once(self, inventory_service):
        """同一个订单重复扣减只生效一次"""
        await inventory_service.commit("order-1", "Computers", 3, 1500.0)
        await inventory_service.commit("order-1", "Computers", 3, 1500.0)

        assert await inventory_service.available("Computers") == 97

    async def test_commit_insufficient(self, inventory_service):
        with pytest.raises(InsufficientInventoryError) as exc_info:
            await inventory_service.commit("order-1", "Paperclips", 101)

        assert isinstance(exc_info.value, UpstreamFailureError)
        assert exc_info.value.available == 100
        assert await inventory_service.available("Paperclips") == 100

    async def test_commit_unknown_item(self, inventory_service):
        with pytest.raises(InsufficientInventoryError) as exc_info:
            await inventory_service.commit("order-1", "Gadget", 1)
        assert exc_info.value.available == 0

    async def test_failed_commit_can_be_retried(self, inventory_service):
        """失败的扣减不会留下记录，补货后同一订单可以再次扣减"""
        with pytest.raises(InsufficientInventoryError):
            await inventory_service.commit("order-1", "Cars", 150)

        await inventory_service.restock([("Cars", 15000.0, 200)])
        await inventory_service.commit("order-1", "Cars", 150)

        assert await inventory_service.available("Cars") == 50

    async def test_restock_resets_quantity(self, inventory_service):
        await inventory_service.commit("order-1", "Cars", 10)
        await inventory_service.restock()
        assert await inventory_service.available("Cars") == 100


# ==================== 支付 ====================

class TestPaymentService:

    async def test_charge_is_idempotent(self, payment_service, session_maker):
        from app.models.payment import Payment

        await payment_service.charge("order-1", "Widget", 2, 1500.0)
        await payment_service.charge("order-1", "Widget", 2, 1500.0)

        async with session_maker() as session:
            payment = await session.get(Payment, "order-1")
        assert payment.status == "charged"
        assert payment.amount == 1500.0

    async def test_negative_amount(self, payment_service):
        with pytest.raises(UpstreamFailureError):
            await payment_service.charge("order-1", "Widget", 1, -1.0)

    async def test_refund(self, payment_service):
        await payment_service.charge("order-1", "Widget", 2, 1500.0)

        assert await payment_service.refund("order-1") is True
        assert await payment_service.refund("order-1") is True

    async def test_refund_without_charge(self, payment_service):
        assert await payment_service.refund("order-1") is False

    async def test_charge_after_refund(self, payment_service):
        """已退款的订单不能再次扣款"""
        await payment_service.charge("order-1", "Widget", 2, 1500.0)
        await payment_service.refund("order-1")

        with pytest.raises(UpstreamFailureError):
            await payment_service.charge("order-1", "Widget", 2, 1500.0)
