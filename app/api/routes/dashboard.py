import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.services.dashboard_service import DashboardService
from app.api.errors import to_http_error
from app.api.schemas.dashboard_schemas import DashboardResponse, StatsResponse, ContributionsResponse
from app.api.schemas.review_schemas import serialize_grouped

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("", response_model=DashboardResponse)
async def get_dashboard(db: Session = Depends(get_db)):
    """
    首页数据：今日复习、待完成数量、课程总数
    """
    try:
        dashboard = DashboardService(db).get_dashboard()
        dashboard["today_reviews"] = serialize_grouped(dashboard["today_reviews"])
        return dashboard
    except Exception as e:
        logger.error(f"获取首页数据失败: {e}")
        raise to_http_error(e, "获取首页数据失败")

@router.get("/stats", response_model=StatsResponse)
async def get_stats(db: Session = Depends(get_db)):
    """
    课程与复习统计
    """
    try:
        return DashboardService(db).get_stats()
    except Exception as e:
        logger.error(f"获取统计信息失败: {e}")
        raise to_http_error(e, "获取统计信息失败")

@router.get("/contributions", response_model=ContributionsResponse)
async def get_contributions(
    days: Optional[int] = Query(None, ge=1, le=3660, description="统计天数"),
    db: Session = Depends(get_db)
):
    """
    学习热力图数据
    """
    try:
        return DashboardService(db).get_contributions(days)
    except Exception as e:
        logger.error(f"获取学习热力图失败: {e}")
        raise to_http_error(e, "获取学习热力图失败")
