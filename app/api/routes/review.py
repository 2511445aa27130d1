import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.utils.exceptions import ReviewTrackerError
from app.services.review_service import ReviewService
from app.scheduling.review_grouping import group_reviews_by_linked_resource
from app.api.errors import to_http_error
from app.api.schemas.review_schemas import (
    ReviewResponse, GroupedReviewsResponse, ReviewsOverviewResponse,
    CalendarMonthResponse, ReviewUpdateRequest, serialize_grouped
)

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/today", response_model=GroupedReviewsResponse)
async def get_today_reviews(db: Session = Depends(get_db)):
    """
    今天到期的复习（已按关联链接分组）
    """
    try:
        reviews = ReviewService(db).get_today_reviews()
        return serialize_grouped(group_reviews_by_linked_resource(reviews))
    except Exception as e:
        logger.error(f"获取今日复习失败: {e}")
        raise to_http_error(e, "获取今日复习失败")

@router.get("/overview", response_model=ReviewsOverviewResponse)
async def get_reviews_overview(db: Session = Depends(get_db)):
    """
    复习总览：今天、未来几天、最近完成
    """
    try:
        overview = ReviewService(db).get_reviews_overview()
        return {scope: serialize_grouped(grouped) for scope, grouped in overview.items()}
    except Exception as e:
        logger.error(f"获取复习总览失败: {e}")
        raise to_http_error(e, "获取复习总览失败")

@router.get("/date/{review_date}", response_model=GroupedReviewsResponse)
async def get_reviews_for_date(review_date: str, db: Session = Depends(get_db)):
    """
    某一天的复习
    """
    try:
        return serialize_grouped(ReviewService(db).get_reviews_for_date(review_date))
    except ReviewTrackerError:
        raise
    except Exception as e:
        logger.error(f"获取 {review_date} 的复习失败: {e}")
        raise to_http_error(e, "获取复习失败")

@router.get("/calendar/{year}/{month}", response_model=CalendarMonthResponse)
async def get_calendar_month(year: int, month: int, db: Session = Depends(get_db)):
    """
    某月日历数据，每天单独分组
    """
    try:
        calendar = ReviewService(db).get_calendar_month(year, month)
        calendar["days"] = {day: serialize_grouped(grouped) for day, grouped in calendar["days"].items()}
        return calendar
    except ReviewTrackerError:
        raise
    except Exception as e:
        logger.error(f"获取日历数据失败: {e}")
        raise to_http_error(e, "获取日历数据失败")

@router.get("/{review_id}", response_model=ReviewResponse)
async def get_review(review_id: int, db: Session = Depends(get_db)):
    """
    获取单个复习项
    """
    try:
        return ReviewService(db).get_review(review_id).to_dict()
    except ReviewTrackerError:
        raise
    except Exception as e:
        logger.error(f"获取复习项失败: {e}")
        raise to_http_error(e, "获取复习项失败")

@router.patch("/{review_id}", response_model=ReviewResponse)
async def update_review(review_id: int, update_request: ReviewUpdateRequest, db: Session = Depends(get_db)):
    """
    更新复习日期和/或完成状态，完成时间由服务端生成
    """
    try:
        review = ReviewService(db).update_review(
            review_id,
            review_date=update_request.review_date,
            completed=update_request.completed,
        )
        return review.to_dict()
    except ReviewTrackerError:
        raise
    except Exception as e:
        logger.error(f"更新复习项失败: {e}")
        raise to_http_error(e, "更新复习项失败")

@router.post("/{review_id}/complete", response_model=ReviewResponse)
async def mark_review_complete(review_id: int, db: Session = Depends(get_db)):
    """
    标记复习完成
    """
    try:
        return ReviewService(db).mark_complete(review_id).to_dict()
    except ReviewTrackerError:
        raise
    except Exception as e:
        logger.error(f"标记复习完成失败: {e}")
        raise to_http_error(e, "标记复习完成失败")

@router.post("/{review_id}/incomplete", response_model=ReviewResponse)
async def mark_review_incomplete(review_id: int, db: Session = Depends(get_db)):
    """
    撤销复习完成
    """
    try:
        return ReviewService(db).mark_incomplete(review_id).to_dict()
    except ReviewTrackerError:
        raise
    except Exception as e:
        logger.error(f"撤销复习完成失败: {e}")
        raise to_http_error(e, "撤销复习完成失败")

@router.post("/{review_id}/toggle", response_model=ReviewResponse)
async def toggle_review(review_id: int, db: Session = Depends(get_db)):
    """
    切换复习完成状态
    """
    try:
        return ReviewService(db).toggle_complete(review_id).to_dict()
    except ReviewTrackerError:
        raise
    except Exception as e:
        logger.error(f"切换复习状态失败: {e}")
        raise to_http_error(e, "切换复习状态失败")

@router.post("/{review_id}/move-to-tomorrow", response_model=ReviewResponse)
async def move_review_to_tomorrow(review_id: int, db: Session = Depends(get_db)):
    """
    把复习推迟到明天
    """
    try:
        return ReviewService(db).move_to_tomorrow(review_id).to_dict()
    except ReviewTrackerError:
        raise
    except Exception as e:
        logger.error(f"推迟复习失败: {e}")
        raise to_http_error(e, "推迟复习失败")

@router.delete("/{review_id}")
async def delete_review(review_id: int, db: Session = Depends(get_db)):
    """
    删除单个复习项，课程保留
    """
    try:
        ReviewService(db).delete_review(review_id)
        return {"message": "复习项已删除"}
    except ReviewTrackerError:
        raise
    except Exception as e:
        logger.error(f"删除复习项失败: {e}")
        raise to_http_error(e, "删除复习项失败")
