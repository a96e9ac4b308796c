# app/workflows/worker.py
# Temporal Worker 模块
#
# 功能说明：
# 1. 创建和配置 Temporal Worker
# 2. 注册订单工作流和订单 Activity
# 3. 管理 Worker 生命周期（SIGINT / SIGTERM 优雅退出）
#
# 运行方式：
#   python -m app.workflows.worker
#
# 注意事项：
# - Worker 可以水平扩展，多个 Worker 可以监听同一个队列
# - Worker 崩溃后，Temporal 会把未完成的任务分配给其他 Worker
# - 等待审批期间工作流不占用 Worker

import asyncio
import signal
from typing import List, Optional, Type

from temporalio.client import Client
from temporalio.worker import Worker, UnsandboxedWorkflowRunner

from app.core.config import settings
from app.core.database import close_db, init_db
from app.core.logging import get_logger
from app.workflows.activities.order import OrderActivities
from app.workflows.definitions.order_processing import OrderProcessingWorkflow

# 获取 logger
logger = get_logger(__name__)


# ==================== 注册列表 ====================

# Workflow 类列表
WORKFLOWS: List[Type] = [
    OrderProcessingWorkflow,
]


def create_worker(
    client: Client,
    activities: Optional[OrderActivities] = None,
    task_queue: Optional[str] = None,
) -> Worker:
    """
    创建 Temporal Worker

    Worker 创建后需要调用 run() 才会开始处理任务。

    Args:
        client: Temporal Client 实例
        activities: Activity 集合（默认使用数据库实现，测试时可注入）
        task_queue: 任务队列（默认使用配置）

    Returns:
        Worker: 配置好的 Worker 实例
    """
    acts = activities or OrderActivities()
    queue = task_queue or settings.TEMPORAL_TASK_QUEUE
    registered = acts.all()

    logger.info(f"创建 Worker，任务队列: {queue}")
    logger.info(f"注册 Workflow: {[w.__name__ for w in WORKFLOWS]}")
    logger.info(f"注册 Activity: {[a.__name__ for a in registered]}")

    # 禁用 sandbox，工作流代码本身只依赖 workflow.* API，确定性由代码保证
    return Worker(
        client=client,
        task_queue=queue,
        workflows=WORKFLOWS,
        activities=registered,
        workflow_runner=UnsandboxedWorkflowRunner(),
    )


async def run_worker():
    """
    运行 Temporal Worker

    1. 初始化数据表
    2. 连接 Temporal Server
    3. 监听任务队列，直到收到 SIGINT / SIGTERM
    """
    logger.info("=" * 60)
    logger.info("Temporal Worker 启动中...")
    logger.info(f"  Temporal Server: {settings.TEMPORAL_HOST}")
    logger.info(f"  Namespace: {settings.TEMPORAL_NAMESPACE}")
    logger.info(f"  Task Queue: {settings.TEMPORAL_TASK_QUEUE}")
    logger.info("=" * 60)

    await init_db()

    client = await Client.connect(
        settings.TEMPORAL_HOST,
        namespace=settings.TEMPORAL_NAMESPACE,
    )
    logger.info("成功连接到 Temporal Server")

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows 不支持 add_signal_handler，由 KeyboardInterrupt 兜底
            pass

    worker = create_worker(client)
    try:
        async with worker:
            logger.info("Worker 开始监听任务...")
            await stop_event.wait()
            logger.info("收到停止信号，Worker 正在关闭...")
    finally:
        await close_db()
        logger.info("Worker 已停止")


def main():
    from app.core.logging import setup_logging
    setup_logging()

    try:
        asyncio.run(run_worker())
    except KeyboardInterrupt:
        logger.info("Worker 已中断")


# ==================== 入口点 ====================
# 允许直接运行此模块：python -m app.workflows.worker

if __name__ == "__main__":
    main()
