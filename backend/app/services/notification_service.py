# app/services/notification_service.py
# 通知服务
#
# 订单处理过程中的所有通知都经过这里。
# 当前实现写入日志（与原来的 NotifyActivity 一致），
# 如需接入邮件 / 飞书等渠道，在 notify 中扩展即可。

from app.core.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """通知通道"""

    async def notify(self, message: str) -> None:
        logger.info(f"[Notification] {message}")
