from sqlalchemy import Column, Integer, ForeignKey, Boolean, Date, DateTime, CheckConstraint
from sqlalchemy.orm import relationship

from app.models.base import BaseModel

"""
复习计划模型
每条记录是某个课程的一次复习：到期日期、间隔天数(0/1/3/7)、是否完成及完成时间。
completed 为 True 时 completed_at 必须有值，反之为空。
"""
class ReviewSchedule(BaseModel):
    __tablename__ = "review_schedule"
    __table_args__ = (
        CheckConstraint(
            "review_interval IN (0, 1, 3, 7)",
            name="ck_review_schedule_interval",
        ),
    )

    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True)
    review_date = Column(Date, nullable=False, index=True)
    review_interval = Column(Integer, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True))

    # 关系定义
    lesson = relationship("Lesson", back_populates="reviews")

    @property
    def is_completed(self) -> bool:
        """
        实际完成状态
        completed_at 为空的记录一律视为未完成，不信任单独的 completed 标记
        """
        return bool(self.completed) and self.completed_at is not None

    def to_dict(self, include_lesson: bool = True):
        data = {
            "id": self.id,
            "lesson_id": self.lesson_id,
            "review_date": self.review_date.isoformat() if self.review_date else None,
            "review_interval": self.review_interval,
            "completed": self.is_completed,
            "completed_at": self.completed_at.isoformat() if self.is_completed else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None
        }
        if include_lesson:
            data["lessons"] = self.lesson.to_dict() if self.lesson else None
        return data
