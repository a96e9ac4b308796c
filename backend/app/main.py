# app/main.py
# FastAPI 应用入口
#
# 功能说明：
# 1. 创建 FastAPI 应用实例
# 2. 配置中间件（CORS、日志）
# 3. 注册路由和全局异常处理
# 4. 管理应用生命周期（建表、补齐库存、关闭连接）
#
# 启动命令：
#   uvicorn app.main:app --reload --host 0.0.0.0 --port 8000
#
# Worker 需要单独启动：
#   python -m app.workflows.worker
#
# API 文档：
#   - Swagger UI: http://localhost:8000/docs
#   - ReDoc: http://localhost:8000/redoc

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.database import init_db, close_db
from app.core.exceptions import AppError
from app.core.logging import setup_logging, get_logger, RequestLoggingMiddleware
from app.services.inventory_service import InventoryService
from app.workflows.client import close_temporal_client

# 导入路由模块
from app.api import health
from app.api import orders
from app.api import approvals


# 初始化日志系统（在应用启动前）
setup_logging()

# 获取当前模块的 logger
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理

    - 启动时：建表、写入默认库存
    - 关闭时：释放 Temporal Client 和数据库连接
    """
    # ==================== 启动阶段 ====================
    logger.info(f"正在启动 {settings.APP_NAME}...")

    await init_db()
    logger.info("数据库初始化完成")

    if settings.INVENTORY_SEED_ON_STARTUP:
        await InventoryService().restock()
        logger.info("默认库存已写入")

    logger.info(f"{settings.APP_NAME} 启动完成")
    logger.info("API 文档: http://localhost:8000/docs")

    # yield 将控制权交给应用
    yield

    # ==================== 关闭阶段 ====================
    logger.info("正在关闭...")

    await close_temporal_client()

    # 关闭数据库连接
    try:
        await close_db()
        logger.info("数据库连接已关闭")
    except Exception as e:
        logger.warning(f"数据库关闭时出错: {e}")

    logger.info("清理完成，应用已关闭")


# ==================== 创建 FastAPI 应用 ====================

app = FastAPI(
    title=settings.APP_NAME,
    description="""
    订单审批服务

    ## 功能模块

    - **订单**: 提交订单，查询订单工作流状态
    - **审批**: 大额订单的人工批准 / 拒绝
    - **健康检查**: 服务状态监控
    """,
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# ==================== 中间件配置 ====================

# CORS 中间件（跨域资源共享）
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],        # 生产环境应该配置具体的域名
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 请求日志中间件
# 记录每个请求的方法、路径、耗时、状态码
app.add_middleware(RequestLoggingMiddleware)


# ==================== 全局异常处理 ====================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """业务异常：按异常自带的状态码返回 {"detail": ...}"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """处理未捕获的异常"""
    logger.exception(f"未处理的异常: {type(exc).__name__}: {str(exc)}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ==================== 注册路由 ====================

# 健康检查路由
# - GET /health - 基础健康检查
# - GET /health/detailed - 详细健康检查
app.include_router(health.router)

# 订单路由
# - POST /api/orders - 提交订单
# - GET /api/orders/{instance_id} - 查询订单状态
app.include_router(orders.router)

# 审批路由
# - GET /api/approvals - 待审批列表
# - GET /api/approvals/{order_id} - 审批详情
# - POST /api/approvals/{order_id}/approve - 批准
# - POST /api/approvals/{order_id}/reject - 拒绝
app.include_router(approvals.router)


# ==================== 根路由 ====================

@app.get("/", tags=["Root"])
async def root():
    """
    根路由

    返回应用基本信息和文档链接
    """
    return {
        "app": settings.APP_NAME,
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
