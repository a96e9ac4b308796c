# app/workflows/types.py
# 工作流共享数据类型
#
# 这个文件定义了 Workflow、Activity 和 API 之间共享的数据类型。
# 放在单独的文件中是为了避免在 Workflow 沙箱中导入不允许的模块。
#
# 注意：这个文件不应该导入任何可能包含非确定性操作的模块
# （如 logging、pathlib、random、sqlalchemy 等）

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
from enum import Enum


# ==================== 订单相关类型 ====================

@dataclass
class OrderPayload:
    """
    订单数据（工作流输入）

    Attributes:
        name: 商品名称
        total_cost: 订单总额
        quantity: 数量，至少为 1
    """
    name: str
    total_cost: float
    quantity: int = 1


@dataclass
class ApprovalPolicy:
    """
    审批策略（工作流输入）

    由客户端根据配置生成后传入，工作流内部不读取配置，保证重放确定性。

    Attributes:
        threshold: 总额达到该值（含）时需要审批
        timeout_hours: 审批窗口（小时）
    """
    threshold: float = 1000.0
    timeout_hours: float = 24

    @property
    def timeout(self) -> timedelta:
        return timedelta(hours=self.timeout_hours)


@dataclass
class OrderResult:
    """
    工作流最终结果

    Attributes:
        processed: 订单是否处理成功
        outcome: 终止阶段（见 OrderStage）
    """
    processed: bool
    outcome: str = ""


class OrderStage(str, Enum):
    """订单工作流阶段（可通过 Query 查询）"""
    CREATED = "created"
    RESERVING_INVENTORY = "reserving_inventory"
    INSUFFICIENT_INVENTORY = "insufficient_inventory"    # 终止：失败
    AWAITING_APPROVAL = "awaiting_approval"
    REJECTED = "rejected"                                # 终止：失败
    TIMED_OUT = "timed_out"                              # 终止：失败
    PROCESSING_PAYMENT = "processing_payment"
    UPDATING_INVENTORY = "updating_inventory"
    PAYMENT_FAILED = "payment_failed"                    # 终止：失败
    COMPLETED = "completed"                              # 终止：成功


# ==================== 库存 / 支付相关类型 ====================

@dataclass
class InventoryRequest:
    """库存预留请求"""
    request_id: str
    item_name: str
    quantity: int


@dataclass
class InventoryResult:
    """库存预留结果"""
    success: bool
    item_name: str = ""
    available: int = 0


@dataclass
class PaymentRequest:
    """
    支付 / 库存扣减请求

    Attributes:
        request_id: 订单 ID
        item_name: 商品名称
        quantity: 数量
        amount: 金额
    """
    request_id: str
    item_name: str
    quantity: int
    amount: float


# ==================== 通知相关类型 ====================

@dataclass
class Notification:
    """发给通知通道的一条消息"""
    message: str


# ==================== 审批相关类型 ====================

class ApprovalStatus(str, Enum):
    """审批状态枚举"""
    PENDING = "pending"       # 待审批
    APPROVED = "approved"     # 已通过
    REJECTED = "rejected"     # 已拒绝
    TIMED_OUT = "timed_out"   # 已超时


@dataclass
class ApprovalPayload:
    """创建审批请求的 Activity 输入"""
    order_id: str
    order_name: str
    total_cost: float
    quantity: int


@dataclass
class ApprovalDecision:
    """
    审批决定（Signal 负载）

    Attributes:
        approved: 是否批准
        actor: 审批人
        comments: 审批意见
    """
    approved: bool
    actor: Optional[str] = None
    comments: Optional[str] = None


@dataclass
class ApprovalActivityResult:
    """
    审批相关 Activity 的返回值

    Attributes:
        success: 操作是否生效
        message: 说明
        status: 操作后审批记录的状态（记录不存在时为 None）
        processed_by: 审批人
        comments: 审批意见
    """
    success: bool
    message: str
    status: Optional[str] = None
    processed_by: Optional[str] = None
    comments: Optional[str] = None
