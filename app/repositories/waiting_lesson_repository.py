from typing import List, Dict, Any
from sqlalchemy import or_, desc
from sqlalchemy.orm import Session

from app.models.lesson import Lesson
from app.models.review_schedule import ReviewSchedule
from app.models.waiting_lesson import WaitingLesson
from app.repositories.base import BaseRepository

class WaitingLessonRepository(BaseRepository[WaitingLesson]):
    def __init__(self, db: Session):
        super().__init__(db, WaitingLesson)

    def list_waiting_lessons(self, lesson_type: str = None, search: str = None) -> List[WaitingLesson]:
        """获取待学课程，最新添加的在前"""
        query = self.db.query(WaitingLesson)
        if lesson_type:
            query = query.filter(WaitingLesson.lesson_type == lesson_type)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                WaitingLesson.title.ilike(pattern),
                WaitingLesson.content.ilike(pattern),
            ))
        return query.order_by(desc(WaitingLesson.created_at), desc(WaitingLesson.id)).all()

    def promote(self, waiting_lesson: WaitingLesson, lesson_fields: Dict[str, Any],
                review_rows: List[Dict[str, Any]]) -> Lesson:
        """
        把待学课程转为正式课程
        创建课程、插入复习计划、删除待学记录在同一个事务中完成
        """
        try:
            lesson = Lesson(**lesson_fields)
            self.db.add(lesson)
            self.db.flush()

            for row in review_rows:
                self.db.add(ReviewSchedule(**{**row, "lesson_id": lesson.id}))

            self.db.delete(waiting_lesson)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(lesson)
        return lesson
