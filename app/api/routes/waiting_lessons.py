import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.utils.database import get_db
from app.utils.exceptions import ReviewTrackerError
from app.services.waiting_lesson_service import WaitingLessonService
from app.api.errors import to_http_error
from app.api.schemas.lesson_schemas import LessonResponse
from app.api.schemas.waiting_lesson_schemas import (
    WaitingLessonCreate, WaitingLessonUpdate, WaitingLessonResponse, PromoteRequest
)

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("", response_model=List[WaitingLessonResponse])
async def list_waiting_lessons(
    lesson_type: Optional[str] = Query(None, description="课程类型"),
    search: Optional[str] = Query(None, description="标题或内容关键字"),
    db: Session = Depends(get_db)
):
    """
    获取待学清单
    """
    try:
        lessons = WaitingLessonService(db).list_waiting_lessons(lesson_type=lesson_type, search=search)
        return [lesson.to_dict() for lesson in lessons]
    except ReviewTrackerError:
        raise
    except Exception as e:
        logger.error(f"获取待学清单失败: {e}")
        raise to_http_error(e, "获取待学清单失败")

@router.post("", response_model=WaitingLessonResponse, status_code=status.HTTP_201_CREATED)
async def add_waiting_lesson(lesson_data: WaitingLessonCreate, db: Session = Depends(get_db)):
    """
    添加待学课程
    """
    try:
        return WaitingLessonService(db).add_waiting_lesson(**lesson_data.model_dump()).to_dict()
    except ReviewTrackerError:
        raise
    except Exception as e:
        logger.error(f"添加待学课程失败: {e}")
        raise to_http_error(e, "添加待学课程失败")

@router.patch("/{waiting_id}", response_model=WaitingLessonResponse)
async def update_waiting_lesson(waiting_id: int, update_data: WaitingLessonUpdate, db: Session = Depends(get_db)):
    """
    更新待学课程
    """
    fields = update_data.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="没有可更新的字段"
        )
    try:
        return WaitingLessonService(db).update_waiting_lesson(waiting_id, **fields).to_dict()
    except ReviewTrackerError:
        raise
    except Exception as e:
        logger.error(f"更新待学课程失败: {e}")
        raise to_http_error(e, "更新待学课程失败")

@router.delete("/{waiting_id}")
async def delete_waiting_lesson(waiting_id: int, db: Session = Depends(get_db)):
    """
    删除待学课程
    """
    try:
        WaitingLessonService(db).delete_waiting_lesson(waiting_id)
        return {"message": "待学课程已删除"}
    except ReviewTrackerError:
        raise
    except Exception as e:
        logger.error(f"删除待学课程失败: {e}")
        raise to_http_error(e, "删除待学课程失败")

@router.post("/{waiting_id}/promote", response_model=LessonResponse, status_code=status.HTTP_201_CREATED)
async def promote_waiting_lesson(waiting_id: int, promote_request: PromoteRequest = None,
                                 db: Session = Depends(get_db)):
    """
    开始学习：转为正式课程并生成复习计划
    """
    try:
        lesson_date = promote_request.lesson_date if promote_request else None
        lesson = WaitingLessonService(db).promote(waiting_id, lesson_date=lesson_date)
        return lesson.to_dict()
    except ReviewTrackerError:
        raise
    except Exception as e:
        logger.error(f"待学课程开始学习失败: {e}")
        raise to_http_error(e, "待学课程开始学习失败")
