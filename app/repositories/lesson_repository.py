from typing import Optional, List, Dict, Any
from sqlalchemy import or_, desc
from sqlalchemy.orm import Session

from app.models.lesson import Lesson, LessonType
from app.models.review_schedule import ReviewSchedule
from app.repositories.base import BaseRepository

class LessonRepository(BaseRepository[Lesson]):
    def __init__(self, db: Session):
        super().__init__(db, Lesson)

    def create_with_reviews(self, lesson_fields: Dict[str, Any], review_rows: List[Dict[str, Any]]) -> Lesson:
        """
        在同一个事务中插入课程和它的复习计划
        review_rows 中的 lesson_id 会被替换成新课程的ID，任意一步失败整体回滚
        """
        try:
            lesson = Lesson(**lesson_fields)
            self.db.add(lesson)
            self.db.flush()

            for row in review_rows:
                self.db.add(ReviewSchedule(**{**row, "lesson_id": lesson.id}))

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(lesson)
        return lesson

    def list_lessons(self, lesson_type: str = None, search: str = None) -> List[Lesson]:
        """按类型和关键字筛选课程，最新的课程日期在前"""
        query = self.db.query(Lesson)
        if lesson_type:
            query = query.filter(Lesson.lesson_type == lesson_type)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(Lesson.title.ilike(pattern), Lesson.content.ilike(pattern)))
        return query.order_by(desc(Lesson.lesson_date), desc(Lesson.id)).all()

    def get_link_lessons(self) -> List[Lesson]:
        """获取所有链接类型课程（关联选择器使用）"""
        return self.db.query(Lesson).filter(
            Lesson.lesson_type == LessonType.LINK.value
        ).order_by(desc(Lesson.lesson_date), desc(Lesson.id)).all()

    def update_lesson(self, lesson_id: int, fields: Dict[str, Any], detach_children: bool = False) -> Optional[Lesson]:
        """
        更新课程字段
        detach_children 为真时同一事务内解除子课程的关联（链接课程改成其它类型时使用）
        """
        lesson = self.get_by_id(lesson_id)
        if not lesson:
            return None
        try:
            if detach_children:
                self.db.query(Lesson).filter(Lesson.linked_lesson_id == lesson_id).update(
                    {Lesson.linked_lesson_id: None}, synchronize_session=False
                )
            for key, value in fields.items():
                setattr(lesson, key, value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(lesson)
        return lesson

    def delete_lesson(self, lesson_id: int) -> bool:
        """删除课程，复习项级联删除，关联到它的子课程解除关联"""
        lesson = self.get_by_id(lesson_id)
        if not lesson:
            return False
        try:
            self.db.query(Lesson).filter(Lesson.linked_lesson_id == lesson_id).update(
                {Lesson.linked_lesson_id: None}, synchronize_session=False
            )
            self.db.delete(lesson)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return True

    def delete_all_lessons(self) -> int:
        """删除全部课程及其复习项"""
        try:
            lessons = self.db.query(Lesson).all()
            self.db.query(Lesson).update({Lesson.linked_lesson_id: None}, synchronize_session=False)
            for lesson in lessons:
                self.db.delete(lesson)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return len(lessons)
