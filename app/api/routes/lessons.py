import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.utils.exceptions import ReviewTrackerError
from app.services.lesson_service import LessonService
from app.api.errors import to_http_error
from app.api.schemas.lesson_schemas import (
    LessonCreate, LessonUpdate, LessonResponse, LessonListResponse, LinkLessonOption
)
from app.api.schemas.review_schemas import ReviewResponse

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("", response_model=LessonResponse, status_code=status.HTTP_201_CREATED)
async def create_lesson(lesson_data: LessonCreate, db: Session = Depends(get_db)):
    """
    创建课程，同时生成 0/1/3/7 天的复习计划
    """
    try:
        lesson_service = LessonService(db)
        lesson = lesson_service.create_lesson(**lesson_data.model_dump())
        return lesson.to_dict()
    except ReviewTrackerError:
        raise
    except Exception as e:
        logger.error(f"创建课程失败: {e}")
        raise to_http_error(e, "创建课程失败")

@router.get("", response_model=LessonListResponse)
async def list_lessons(
    lesson_type: Optional[str] = Query(None, description="课程类型"),
    search: Optional[str] = Query(None, description="标题或内容关键字"),
    db: Session = Depends(get_db)
):
    """
    获取课程列表
    """
    try:
        lessons = LessonService(db).list_lessons(lesson_type=lesson_type, search=search)
        return {"lessons": [lesson.to_dict() for lesson in lessons], "total": len(lessons)}
    except ReviewTrackerError:
        raise
    except Exception as e:
        logger.error(f"获取课程列表失败: {e}")
        raise to_http_error(e, "获取课程列表失败")

@router.get("/links", response_model=List[LinkLessonOption])
async def list_link_lessons(db: Session = Depends(get_db)):
    """
    获取可关联的链接课程
    """
    try:
        lessons = LessonService(db).list_link_lessons()
        return [
            {"id": lesson.id, "title": lesson.title, "link_url": lesson.link_url}
            for lesson in lessons
        ]
    except Exception as e:
        logger.error(f"获取链接课程失败: {e}")
        raise to_http_error(e, "获取链接课程失败")

@router.delete("")
async def delete_all_lessons(db: Session = Depends(get_db)):
    """
    删除全部课程及复习数据
    """
    try:
        deleted_count = LessonService(db).delete_all_lessons()
        return {"message": "全部课程已删除", "deleted_count": deleted_count}
    except Exception as e:
        logger.error(f"删除全部课程失败: {e}")
        raise to_http_error(e, "删除全部课程失败")

@router.get("/{lesson_id}", response_model=LessonResponse)
async def get_lesson(lesson_id: int, db: Session = Depends(get_db)):
    """
    根据ID获取课程
    """
    try:
        return LessonService(db).get_lesson(lesson_id).to_dict()
    except ReviewTrackerError:
        raise
    except Exception as e:
        logger.error(f"获取课程失败: {e}")
        raise to_http_error(e, "获取课程失败")

@router.patch("/{lesson_id}", response_model=LessonResponse)
async def update_lesson(lesson_id: int, update_data: LessonUpdate, db: Session = Depends(get_db)):
    """
    更新课程（不会移动已有的复习计划）
    """
    fields = update_data.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="没有可更新的字段"
        )
    try:
        lesson = LessonService(db).update_lesson(lesson_id, **fields)
        return lesson.to_dict()
    except ReviewTrackerError:
        raise
    except Exception as e:
        logger.error(f"更新课程失败: {e}")
        raise to_http_error(e, "更新课程失败")

@router.delete("/{lesson_id}")
async def delete_lesson(lesson_id: int, db: Session = Depends(get_db)):
    """
    删除课程，复习项一并删除
    """
    try:
        LessonService(db).delete_lesson(lesson_id)
        return {"message": "课程已删除"}
    except ReviewTrackerError:
        raise
    except Exception as e:
        logger.error(f"删除课程失败: {e}")
        raise to_http_error(e, "删除课程失败")

@router.get("/{lesson_id}/reviews", response_model=List[ReviewResponse])
async def get_lesson_reviews(lesson_id: int, db: Session = Depends(get_db)):
    """
    获取课程的全部复习项
    """
    try:
        reviews = LessonService(db).get_lesson_reviews(lesson_id)
        return [review.to_dict() for review in reviews]
    except ReviewTrackerError:
        raise
    except Exception as e:
        logger.error(f"获取课程复习项失败: {e}")
        raise to_http_error(e, "获取课程复习项失败")
