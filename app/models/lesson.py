from enum import Enum

from sqlalchemy import Column, String, Integer, Text, Date, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from .base import BaseModel


class LessonType(str, Enum):
    """课程类型"""
    LINK = "link"
    WORD = "word"
    SENTENCE = "sentence"


LESSON_TYPES = tuple(t.value for t in LessonType)


"""
课程模型
用户保存的学习内容：链接、单词或句子。
单词/句子可以通过 linked_lesson_id 关联到一个链接类型的课程。
"""
class Lesson(BaseModel):
    __tablename__ = "lessons"
    __table_args__ = (
        CheckConstraint(
            "lesson_type IN ('link', 'word', 'sentence')",
            name="ck_lessons_lesson_type",
        ),
    )

    title = Column(String(500), nullable=False)
    content = Column(Text)
    lesson_type = Column(String(20), nullable=False, default=LessonType.WORD.value)
    link_url = Column(Text)
    linked_lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="SET NULL"), index=True)
    lesson_date = Column(Date, nullable=False, index=True)

    # 删除课程时级联删除它的全部复习项
    reviews = relationship(
        "ReviewSchedule",
        back_populates="lesson",
        cascade="all, delete-orphan",
        order_by="ReviewSchedule.review_interval",
    )
    linked_lesson = relationship("Lesson", remote_side="Lesson.id")

    @property
    def is_link(self) -> bool:
        return self.lesson_type == LessonType.LINK.value

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "lesson_type": self.lesson_type,
            "link_url": self.link_url,
            "linked_lesson_id": self.linked_lesson_id,
            "lesson_date": self.lesson_date.isoformat() if self.lesson_date else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None
        }
