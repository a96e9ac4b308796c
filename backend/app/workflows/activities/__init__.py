# app/workflows/activities/__init__.py
# Activity 模块
#
# Activity 是 Temporal 中实际执行任务的单元，可以包含 I/O 操作
# （数据库、外部服务调用）。
#
# 本项目的 Activity 都定义在 OrderActivities 中，依赖通过构造函数注入，
# 每个 Activity 都需要是幂等的（Temporal 保证至少执行一次）。

from app.workflows.activities.order import OrderActivities, UPSTREAM_FAILURE

__all__ = [
    "OrderActivities",
    "UPSTREAM_FAILURE",
]
