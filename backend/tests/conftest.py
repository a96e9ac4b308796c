# tests/conftest.py
# Pytest 配置文件
#
# 功能：
# 1. 自动加载环境变量
# 2. 为每个测试创建独立的 SQLite 临时数据库
# 3. 提供通用 fixtures（存储、服务、API 客户端）

import os
import sys
import pytest

# 将项目根目录添加到 Python 路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


# ==================== 环境配置 ====================

def pytest_configure(config):
    """Pytest 启动时配置"""
    # 加载 .env 文件
    from dotenv import load_dotenv
    load_dotenv()

    # 测试不连接真实的 PostgreSQL，启动时也不写默认库存
    os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    os.environ.setdefault("INVENTORY_SEED_ON_STARTUP", "false")


# ==================== 数据库 Fixtures ====================

@pytest.fixture
async def db_engine(tmp_path):
    """临时数据库引擎（每个测试一个新文件）"""
    from app.core.database import Base, create_engine
    import app.models  # noqa: F401

    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    """指向临时数据库的会话工厂"""
    from app.core.database import create_session_maker

    return create_session_maker(db_engine)


# ==================== 服务 Fixtures ====================

@pytest.fixture
def approval_store(session_maker):
    """审批存储（24 小时审批窗口）"""
    from datetime import timedelta
    from app.services.approval_store import ApprovalStore

    return ApprovalStore(session_maker=session_maker, approval_window=timedelta(hours=24))


@pytest.fixture
async def inventory_service(session_maker):
    """库存服务（已写入默认库存）"""
    from app.services.inventory_service import InventoryService

    service = InventoryService(session_maker=session_maker)
    await service.restock()
    return service


@pytest.fixture
def payment_service(session_maker):
    """支付服务"""
    from app.services.payment_service import PaymentService

    return PaymentService(session_maker=session_maker)
