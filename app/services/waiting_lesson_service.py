import logging
from typing import List, Optional
from sqlalchemy.orm import Session

from app.models.lesson import Lesson, LessonType, LESSON_TYPES
from app.models.waiting_lesson import WaitingLesson
from app.repositories.waiting_lesson_repository import WaitingLessonRepository
from app.scheduling.schedule_generator import build_review_rows
from app.services.change_notifier import ChangeNotifier, change_notifier
from app.utils.exceptions import ValidationError, NotFoundError
from app.utils.helpers import DateInput, to_calendar_date, today_local

logger = logging.getLogger(__name__)


class WaitingLessonService:
    """待学清单服务：先保存、以后再开始学习的内容"""

    def __init__(self, db: Session, notifier: ChangeNotifier = None):
        self.db = db
        self.waiting_repo = WaitingLessonRepository(db)
        self.notifier = notifier or change_notifier

    def add_waiting_lesson(self, title: str, lesson_type: str = LessonType.WORD.value,
                           content: str = None, link_url: str = None,
                           planned_start_date: DateInput = None) -> WaitingLesson:
        """添加待学课程"""
        fields = self._normalize_fields(title, lesson_type, content, link_url, planned_start_date)
        try:
            waiting_lesson = self.waiting_repo.create(**fields)
        except Exception as e:
            self.waiting_repo.rollback()
            logger.error(f"添加待学课程失败: {e}")
            raise

        logger.info(f"待学课程添加成功: {waiting_lesson.id} {waiting_lesson.title}")
        self.notifier.notify("waiting_lessons", "insert", waiting_lesson.id)
        return waiting_lesson

    def update_waiting_lesson(self, waiting_id: int, **kwargs) -> WaitingLesson:
        """更新待学课程"""
        waiting_lesson = self.get_waiting_lesson(waiting_id)
        merged = {
            "title": waiting_lesson.title,
            "lesson_type": waiting_lesson.lesson_type,
            "content": waiting_lesson.content,
            "link_url": waiting_lesson.link_url,
            "planned_start_date": waiting_lesson.planned_start_date,
        }
        merged.update(kwargs)
        fields = self._normalize_fields(**merged)

        try:
            waiting_lesson = self.waiting_repo.update(waiting_id, **fields)
        except Exception as e:
            self.waiting_repo.rollback()
            logger.error(f"更新待学课程 {waiting_id} 失败: {e}")
            raise

        self.notifier.notify("waiting_lessons", "update", waiting_id)
        return waiting_lesson

    def delete_waiting_lesson(self, waiting_id: int) -> bool:
        """删除待学课程"""
        try:
            deleted = self.waiting_repo.delete(waiting_id)
        except Exception as e:
            self.waiting_repo.rollback()
            logger.error(f"删除待学课程 {waiting_id} 失败: {e}")
            raise

        if not deleted:
            raise NotFoundError("待学课程不存在")
        self.notifier.notify("waiting_lessons", "delete", waiting_id)
        return True

    def get_waiting_lesson(self, waiting_id: int) -> WaitingLesson:
        waiting_lesson = self.waiting_repo.get_by_id(waiting_id)
        if not waiting_lesson:
            raise NotFoundError("待学课程不存在")
        return waiting_lesson

    def list_waiting_lessons(self, lesson_type: str = None, search: str = None) -> List[WaitingLesson]:
        """获取待学清单，支持按类型筛选和关键字搜索"""
        if lesson_type and lesson_type not in LESSON_TYPES:
            raise ValidationError(f"无效的课程类型: {lesson_type}")
        return self.waiting_repo.list_waiting_lessons(lesson_type=lesson_type, search=search)

    def promote(self, waiting_id: int, lesson_date: DateInput = None) -> Lesson:
        """
        开始学习待学课程：生成正式课程和复习计划，并从待学清单移除

        Args:
            waiting_id: 待学课程ID
            lesson_date: 课程日期，默认本地今天

        Returns:
            Lesson: 新建的课程
        """
        waiting_lesson = self.get_waiting_lesson(waiting_id)
        anchor = to_calendar_date(lesson_date) if lesson_date is not None else today_local()
        if waiting_lesson.lesson_type == LessonType.LINK.value and not waiting_lesson.link_url:
            raise ValidationError("链接类型课程必须填写链接地址")

        lesson_fields = {
            "title": waiting_lesson.title,
            "content": waiting_lesson.content,
            "lesson_type": waiting_lesson.lesson_type,
            "link_url": waiting_lesson.link_url if waiting_lesson.lesson_type == LessonType.LINK.value else None,
            "linked_lesson_id": None,
            "lesson_date": anchor,
        }
        try:
            lesson = self.waiting_repo.promote(waiting_lesson, lesson_fields, build_review_rows(None, anchor))
        except Exception as e:
            logger.error(f"待学课程 {waiting_id} 开始学习失败: {e}")
            raise

        logger.info(f"待学课程 {waiting_id} 已转为课程 {lesson.id}，课程日期 {anchor}")
        self.notifier.notify("waiting_lessons", "delete", waiting_id)
        self.notifier.notify("lessons", "insert", lesson.id)
        self.notifier.notify("review_schedule", "insert")
        return lesson

    def _normalize_fields(self, title: str, lesson_type: str, content: Optional[str],
                          link_url: Optional[str], planned_start_date: DateInput) -> dict:
        if not title or not title.strip():
            raise ValidationError("标题不能为空")
        if lesson_type not in LESSON_TYPES:
            raise ValidationError(f"无效的课程类型: {lesson_type}")

        is_link = lesson_type == LessonType.LINK.value
        return {
            "title": title.strip(),
            "lesson_type": lesson_type,
            "content": content or None,
            "link_url": link_url.strip() if is_link and link_url else None,
            "planned_start_date": to_calendar_date(planned_start_date) if planned_start_date else None,
        }
