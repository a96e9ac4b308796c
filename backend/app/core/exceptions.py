# app/core/exceptions.py
# 业务异常定义
#
# 每个异常携带对应的 HTTP 状态码，main.py 中的异常处理器
# 统一把它们转换成 {"detail": ...} 响应。
#
# 分类：
#   ValidationError           - 输入不合法（422）
#   NotFoundError             - 订单/审批不存在（404）
#   ConflictError             - 重复提交（409）
#   ApprovalConflictError     - 审批已处理（400）
#   ExpiredError              - 审批窗口已过（400）
#   UpstreamFailureError      - 库存/支付服务失败（502）
#   TransientUnavailableError - 存储或信号通道暂不可用（503）
#   SignalDeliveryError       - 审批已落库但信号发送失败（500）

from typing import Any, Optional


class AppError(Exception):
    """业务异常基类"""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        """转换为响应体"""
        return {"detail": self.message}


class ValidationError(AppError):
    status_code = 422


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class ApprovalConflictError(ConflictError):
    """审批已经不是 pending 状态"""

    status_code = 400

    def __init__(self, order_id: str, status: str):
        super().__init__(f"Approval request is already {status}")
        self.order_id = order_id
        self.status = status


class ExpiredError(AppError):
    """审批请求已过期（惰性检查，在做决定时才发现）"""

    status_code = 400

    def __init__(self, order_id: str):
        super().__init__("Approval request has expired")
        self.order_id = order_id


class UpstreamFailureError(AppError):
    status_code = 502


class TransientUnavailableError(AppError):
    status_code = 503


class SignalDeliveryError(TransientUnavailableError):
    """
    审批结果已经写入存储，但通知工作流的信号发送失败

    调用方可以重试；工作流可能不会立即恢复，
    超时处理器会读取已落库的决定。
    """

    status_code = 500

    def __init__(self, order_id: str, approval: Optional[dict] = None):
        super().__init__("Failed to process approval decision")
        self.order_id = order_id
        self.approval = approval

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.approval is not None:
            data["approval"] = self.approval
        return data
