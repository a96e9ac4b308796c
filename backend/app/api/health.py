# app/api/health.py
# 健康检查
#
#   GET /health            基础检查
#   GET /health/detailed   检查数据库和 Temporal 连接

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text

from app.core.database import get_db
from app.workflows.client import get_temporal_client

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    """Basic health check"""
    return {"status": "ok"}


@router.get("/health/detailed")
async def detailed_health_check(db: AsyncSession = Depends(get_db)):
    """Detailed health check including database and Temporal status"""

    health = {
        "status": "ok",
        "services": {}
    }

    # Check database
    try:
        await db.execute(text("SELECT 1"))
        health["services"]["database"] = "connected"
    except Exception as e:
        health["services"]["database"] = f"error: {str(e)}"
        health["status"] = "degraded"

    # Check Temporal
    try:
        client = await get_temporal_client()
        await client.service_client.check_health()
        health["services"]["temporal"] = "connected"
    except Exception as e:
        health["services"]["temporal"] = f"error: {str(e)}"
        health["status"] = "degraded"

    return health
