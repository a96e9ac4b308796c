# app/services/approval_store.py
# 审批存储服务
#
# 功能说明：
# 1. 创建 / 查询审批记录
# 2. 记录审批决定（批准 / 拒绝）
# 3. 超时处理：把仍处于 pending 的记录标记为 timed_out
#
# 并发说明：
# 审批记录会被两个独立的参与者修改：审批人（API）和超时处理器（工作流 Activity）。
# 所有状态变更都通过条件更新完成：
#   UPDATE approval_requests SET status=... WHERE order_id=? AND status='pending'
# 只有第一个执行成功的一方会生效，另一方会看到 rowcount=0。
#
# 使用方法：
#   from app.services.approval_store import ApprovalStore
#
#   store = ApprovalStore()
#   approval = await store.create_pending("order-1", "Widget", 1500.0, 2)
#   approval = await store.record_decision("order-1", approved=True, actor="mgr")

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.database import async_session_maker
from app.core.exceptions import (
    ApprovalConflictError,
    ConflictError,
    ExpiredError,
    NotFoundError,
    TransientUnavailableError,
)
from app.core.logging import get_logger
from app.models.approval import ApprovalRequest
from app.workflows.types import ApprovalStatus

logger = get_logger(__name__)


def utcnow() -> datetime:
    """当前 UTC 时间（naive，与数据库中的 DateTime 列保持一致）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ApprovalStore:
    """
    审批存储

    ApprovalRequest.status 的唯一写入方。工作流不会直接读写这张表，
    只通过 Activity 调用本类的方法。
    """

    def __init__(
        self,
        session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
        approval_window: Optional[timedelta] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            session_maker: 会话工厂，默认使用全局 async_session_maker
            approval_window: 审批窗口，默认取配置 APPROVAL_TIMEOUT_HOURS
            clock: 时间函数，测试中可替换
        """
        self.session_maker = session_maker or async_session_maker
        self.approval_window = approval_window or timedelta(hours=settings.APPROVAL_TIMEOUT_HOURS)
        self.clock = clock

    @property
    def timeout_comment(self) -> str:
        hours = self.approval_window.total_seconds() / 3600
        return f"Approval request timed out after {hours:g} hours"

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """打开会话，并把连接类错误转换为 TransientUnavailableError"""
        try:
            async with self.session_maker() as session:
                yield session
        except IntegrityError:
            raise
        except (DBAPIError, OSError) as e:
            logger.error(f"审批存储不可用: {e}")
            raise TransientUnavailableError("Approval store is unavailable") from e

    # ==================== 创建 / 查询 ====================

    async def create_pending(
        self,
        order_id: str,
        order_name: str,
        total_cost: float,
        quantity: int,
    ) -> ApprovalRequest:
        """
        创建待审批记录

        Raises:
            ConflictError: 该订单已经有审批记录（不会覆盖）
        """
        now = self.clock()
        approval = ApprovalRequest(
            order_id=order_id,
            order_name=order_name,
            total_cost=total_cost,
            quantity=quantity,
            status=ApprovalStatus.PENDING.value,
            created_at=now,
            expires_at=now + self.approval_window,
        )

        try:
            async with self._session() as session:
                existing = await session.get(ApprovalRequest, order_id)
                if existing is not None:
                    raise ConflictError(
                        f"Approval request for order {order_id} already exists ({existing.status})"
                    )
                session.add(approval)
                await session.commit()
        except IntegrityError as e:
            # 并发插入同一个主键
            raise ConflictError(f"Approval request for order {order_id} already exists") from e

        logger.info(
            f"已创建审批请求: order_id={order_id}, {quantity}x {order_name} at ${total_cost}, "
            f"expires_at={approval.expires_at.isoformat()}"
        )
        return approval

    async def get(self, order_id: str) -> ApprovalRequest:
        """
        查询审批记录

        Raises:
            NotFoundError: 记录不存在
        """
        async with self._session() as session:
            approval = await session.get(ApprovalRequest, order_id)

        if approval is None:
            raise NotFoundError(f"Approval request for order {order_id} not found")
        return approval

    async def list_pending(self) -> list[ApprovalRequest]:
        """
        查询所有待审批记录，按创建时间倒序

        查询失败时返回空列表（只记录警告），不向上抛出。
        """
        try:
            async with self.session_maker() as session:
                result = await session.execute(
                    select(ApprovalRequest)
                    .where(ApprovalRequest.status == ApprovalStatus.PENDING.value)
                    .order_by(ApprovalRequest.created_at.desc())
                )
                return list(result.scalars().all())
        except (SQLAlchemyError, OSError) as e:
            logger.warning(f"查询待审批列表失败，返回空列表: {e}")
            return []

    # ==================== 状态变更 ====================

    async def _compare_and_set(
        self,
        session: AsyncSession,
        order_id: str,
        status: ApprovalStatus,
        **values,
    ) -> bool:
        """仅当记录仍为 pending 时更新状态，返回是否更新成功"""
        result = await session.execute(
            update(ApprovalRequest)
            .where(
                ApprovalRequest.order_id == order_id,
                ApprovalRequest.status == ApprovalStatus.PENDING.value,
            )
            .values(status=status.value, **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def record_decision(
        self,
        order_id: str,
        approved: bool,
        actor: Optional[str] = None,
        comments: Optional[str] = None,
    ) -> ApprovalRequest:
        """
        记录审批决定

        检查顺序：记录存在 → 仍为 pending → 未过期。
        过期检查是惰性的：发现已过期时，顺便把记录标记为 timed_out。

        Args:
            order_id: 订单 ID
            approved: True 批准，False 拒绝
            actor: 审批人，未提供时记为 "Unknown"
            comments: 审批意见

        Returns:
            ApprovalRequest: 更新后的记录

        Raises:
            NotFoundError: 记录不存在
            ApprovalConflictError: 记录已经处理过
            ExpiredError: 审批窗口已过
        """
        target = ApprovalStatus.APPROVED if approved else ApprovalStatus.REJECTED

        async with self._session() as session:
            approval = await session.get(ApprovalRequest, order_id)
            if approval is None:
                raise NotFoundError(f"Approval request for order {order_id} not found")

            if approval.status != ApprovalStatus.PENDING.value:
                raise ApprovalConflictError(order_id, approval.status)

            now = self.clock()
            if now > approval.expires_at:
                await self._compare_and_set(
                    session,
                    order_id,
                    ApprovalStatus.TIMED_OUT,
                    processed_at=now,
                    comments=self.timeout_comment,
                )
                await session.commit()
                logger.warning(f"审批已过期，拒绝处理决定: order_id={order_id}")
                raise ExpiredError(order_id)

            updated = await self._compare_and_set(
                session,
                order_id,
                target,
                processed_at=now,
                processed_by=actor or "Unknown",
                comments=comments,
            )
            await session.commit()

            current = await session.get(ApprovalRequest, order_id, populate_existing=True)

        if not updated:
            # 超时处理器或另一个审批人抢先了
            raise ApprovalConflictError(order_id, current.status)

        logger.info(f"审批决定已记录: order_id={order_id}, status={target.value}, by={current.processed_by}")
        return current

    async def mark_timed_out(self, order_id: str) -> Optional[ApprovalRequest]:
        """
        超时处理：仅当记录仍为 pending 时标记为 timed_out

        Returns:
            ApprovalRequest: 操作后的记录（可能已被审批人处理过）
            None: 记录不存在
        """
        async with self._session() as session:
            updated = await self._compare_and_set(
                session,
                order_id,
                ApprovalStatus.TIMED_OUT,
                processed_at=self.clock(),
                comments=self.timeout_comment,
            )
            await session.commit()
            approval = await session.get(ApprovalRequest, order_id, populate_existing=True)

        if updated:
            logger.warning(f"审批超时: order_id={order_id}")
        elif approval is not None:
            logger.info(f"审批已处理，跳过超时: order_id={order_id}, status={approval.status}")
        return approval
