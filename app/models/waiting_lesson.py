from sqlalchemy import Column, String, Text, Date, CheckConstraint

from .base import BaseModel

"""
待学课程模型
先存起来、以后再学的内容，还没有复习计划。开始学习时会转成正式课程。
"""
class WaitingLesson(BaseModel):
    __tablename__ = "waiting_lessons"
    __table_args__ = (
        CheckConstraint(
            "lesson_type IN ('link', 'word', 'sentence')",
            name="ck_waiting_lessons_lesson_type",
        ),
    )

    title = Column(String(500), nullable=False)
    content = Column(Text)
    lesson_type = Column(String(20), nullable=False, default="word")
    link_url = Column(Text)
    planned_start_date = Column(Date)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "lesson_type": self.lesson_type,
            "link_url": self.link_url,
            "planned_start_date": self.planned_start_date.isoformat() if self.planned_start_date else None,
            "created_at": self.created_at.isoformat() if self.created_at else None
        }
