# app/models/approval.py
# 订单审批模型
#
# 功能说明：
# ApprovalRequest - 大额订单的人工审批记录
#
# 生命周期：
# 1. 订单总额 >= 审批阈值时由工作流创建（status=pending）
# 2. 审批人通过 API 批准/拒绝，或超时处理器标记为 timed_out
# 3. 状态只能从 pending 变更一次，之后不再修改
# 4. 记录永不删除，作为审计历史保留
#
# 使用方法：
#   from app.models.approval import ApprovalRequest

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, Integer, Float, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.workflows.types import ApprovalStatus


class ApprovalRequest(Base):
    """
    订单审批表

    主键就是订单 ID（同时也是工作流 ID），一个订单最多一条审批记录。
    status 字段只允许 ApprovalStore 通过条件更新（WHERE status='pending'）修改。
    """

    __tablename__ = "approval_requests"

    order_id: Mapped[str] = mapped_column(
        String(100),
        primary_key=True,
        comment="订单 ID（工作流 ID）",
    )

    # ==================== 订单快照 ====================
    order_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment="商品名称",
    )
    total_cost: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="订单总额",
    )
    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        comment="数量",
    )

    # ==================== 审批状态 ====================
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ApprovalStatus.PENDING.value,
        comment="状态: pending | approved | rejected | timed_out",
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        nullable=True,
        comment="处理时间",
    )
    processed_by: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="审批人",
    )
    comments: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="审批意见 / 超时说明",
    )

    # ==================== 时间戳 ====================
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        comment="创建时间（UTC）",
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        comment="过期时间 = 创建时间 + 审批窗口",
    )

    __table_args__ = (
        Index("ix_approval_requests_status_created", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ApprovalRequest {self.order_id} ({self.status})>"
