import logging
from typing import List, Optional, Dict, Any
from sqlalchemy.orm import Session

from app.models.lesson import Lesson, LessonType, LESSON_TYPES
from app.models.review_schedule import ReviewSchedule
from app.repositories.lesson_repository import LessonRepository
from app.repositories.review_repository import ReviewRepository
from app.scheduling.schedule_generator import build_review_rows
from app.services.change_notifier import ChangeNotifier, change_notifier
from app.utils.exceptions import ValidationError, NotFoundError
from app.utils.helpers import DateInput, to_calendar_date, today_local

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("title", "content", "lesson_type", "link_url", "linked_lesson_id", "lesson_date")


class LessonService:
    """课程服务，负责课程的增删改查以及创建时生成复习计划"""

    def __init__(self, db: Session, notifier: ChangeNotifier = None):
        self.db = db
        self.lesson_repo = LessonRepository(db)
        self.review_repo = ReviewRepository(db)
        self.notifier = notifier or change_notifier

    def create_lesson(self, title: str, lesson_type: str = LessonType.WORD.value,
                      lesson_date: DateInput = None, content: str = None,
                      link_url: str = None, linked_lesson_id: int = None) -> Lesson:
        """
        创建课程，并在同一事务中插入 0/1/3/7 天的四条复习计划

        Args:
            title: 标题
            lesson_type: 课程类型 ("link", "word", "sentence")
            lesson_date: 课程日期，默认本地今天
            content: 内容（释义、例句、笔记）
            link_url: 链接地址，仅链接类型有效
            linked_lesson_id: 关联的链接课程ID，仅单词/句子有效

        Returns:
            Lesson: 创建的课程
        """
        lesson_fields = self._normalize_fields(
            title=title,
            lesson_type=lesson_type,
            lesson_date=lesson_date if lesson_date is not None else today_local(),
            content=content,
            link_url=link_url,
            linked_lesson_id=linked_lesson_id,
        )
        review_rows = build_review_rows(None, lesson_fields["lesson_date"])

        try:
            lesson = self.lesson_repo.create_with_reviews(lesson_fields, review_rows)
        except Exception as e:
            logger.error(f"创建课程失败: {e}")
            raise

        logger.info(f"新课程创建成功: {lesson.id} ({lesson.lesson_type}) {lesson.title}, 复习 {len(review_rows)} 条")
        self.notifier.notify("lessons", "insert", lesson.id)
        self.notifier.notify("review_schedule", "insert")
        return lesson

    def update_lesson(self, lesson_id: int, **kwargs) -> Lesson:
        """
        更新课程
        修改课程日期不会移动已有的复习计划
        """
        lesson = self.get_lesson(lesson_id)

        unknown = set(kwargs) - set(_EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"不支持修改的字段: {', '.join(sorted(unknown))}")

        merged = {name: getattr(lesson, name) for name in _EDITABLE_FIELDS}
        merged.update(kwargs)
        fields = self._normalize_fields(lesson_id=lesson_id, **merged)

        # 链接课程改成单词/句子后，子课程不能再指向它
        detach_children = lesson.is_link and fields["lesson_type"] != LessonType.LINK.value

        try:
            lesson = self.lesson_repo.update_lesson(lesson_id, fields, detach_children=detach_children)
        except Exception as e:
            logger.error(f"更新课程 {lesson_id} 失败: {e}")
            raise

        if detach_children:
            logger.info(f"课程 {lesson_id} 不再是链接类型，已解除子课程关联")
        logger.info(f"课程更新成功: {lesson_id}")
        self.notifier.notify("lessons", "update", lesson_id)
        return lesson

    def delete_lesson(self, lesson_id: int) -> bool:
        """删除课程及其全部复习项"""
        try:
            deleted = self.lesson_repo.delete_lesson(lesson_id)
        except Exception as e:
            logger.error(f"删除课程 {lesson_id} 失败: {e}")
            raise

        if not deleted:
            raise NotFoundError("课程不存在")

        logger.info(f"课程已删除: {lesson_id}")
        self.notifier.notify("lessons", "delete", lesson_id)
        self.notifier.notify("review_schedule", "delete")
        return True

    def delete_all_lessons(self) -> int:
        """清空全部课程数据"""
        deleted_count = self.lesson_repo.delete_all_lessons()
        logger.info(f"已删除全部课程: {deleted_count} 个")
        if deleted_count:
            self.notifier.notify("lessons", "delete")
            self.notifier.notify("review_schedule", "delete")
        return deleted_count

    def get_lesson(self, lesson_id: int) -> Lesson:
        """根据ID获取课程，不存在时抛出 NotFoundError"""
        lesson = self.lesson_repo.get_by_id(lesson_id)
        if not lesson:
            raise NotFoundError("课程不存在")
        return lesson

    def list_lessons(self, lesson_type: str = None, search: str = None) -> List[Lesson]:
        """获取课程列表"""
        if lesson_type and lesson_type not in LESSON_TYPES:
            raise ValidationError(f"无效的课程类型: {lesson_type}")
        return self.lesson_repo.list_lessons(lesson_type=lesson_type, search=search)

    def list_link_lessons(self) -> List[Lesson]:
        """获取可被关联的链接课程"""
        return self.lesson_repo.get_link_lessons()

    def get_lessons_count(self) -> int:
        """获取课程总数"""
        return self.lesson_repo.count()

    def get_lesson_reviews(self, lesson_id: int) -> List[ReviewSchedule]:
        """获取课程的全部复习项"""
        self.get_lesson(lesson_id)
        return self.review_repo.get_reviews_by_lesson(lesson_id)

    def _normalize_fields(self, title: str, lesson_type: str, lesson_date: DateInput,
                          content: Optional[str], link_url: Optional[str],
                          linked_lesson_id: Optional[int], lesson_id: int = None) -> Dict[str, Any]:
        """校验并整理课程字段"""
        if not title or not title.strip():
            raise ValidationError("标题不能为空")
        if lesson_type not in LESSON_TYPES:
            raise ValidationError(f"无效的课程类型: {lesson_type}")
        if lesson_date is None:
            raise ValidationError("课程日期不能为空")

        is_link = lesson_type == LessonType.LINK.value
        if is_link:
            if not link_url or not link_url.strip():
                raise ValidationError("链接类型课程必须填写链接地址")
            # 链接课程不能再关联其它课程
            linked_lesson_id = None
        else:
            link_url = None

        if linked_lesson_id is not None:
            if lesson_id is not None and linked_lesson_id == lesson_id:
                raise ValidationError("课程不能关联自己")
            parent = self.lesson_repo.get_by_id(linked_lesson_id)
            if not parent:
                raise ValidationError(f"关联的课程不存在: {linked_lesson_id}")
            if not parent.is_link:
                raise ValidationError("只能关联链接类型的课程")

        return {
            "title": title.strip(),
            "content": content or None,
            "lesson_type": lesson_type,
            "link_url": link_url.strip() if link_url else None,
            "linked_lesson_id": linked_lesson_id,
            "lesson_date": to_calendar_date(lesson_date),
        }
