# app/models/__init__.py
# 数据模型包
#
# 这个文件用于导出所有数据模型，方便其他模块导入
# 使用方式：from app.models import ApprovalRequest
#
# init_db() 会导入本模块，确保所有表都注册到 Base.metadata

from app.models.approval import ApprovalRequest
from app.models.inventory import InventoryItem, InventoryCommit
from app.models.payment import Payment

__all__ = [
    "ApprovalRequest",
    "InventoryItem",
    "InventoryCommit",
    "Payment",
]
