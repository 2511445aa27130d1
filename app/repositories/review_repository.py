from dataclasses import dataclass
from typing import List, Optional, Tuple
from datetime import date, datetime
from sqlalchemy import and_, or_, asc, desc, update
from sqlalchemy.orm import Session, joinedload

from app.models.review_schedule import ReviewSchedule
from app.repositories.base import BaseRepository


@dataclass
class ReviewQuery:
    """复习查询条件，字段为空表示不限制"""
    review_date: Optional[date] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    date_after: Optional[date] = None
    date_before: Optional[date] = None
    completed: Optional[bool] = None
    lesson_id: Optional[int] = None
    order_by: Tuple[str, ...] = ("review_date", "review_interval")
    limit: Optional[int] = None


# 实际完成：completed 为真且 completed_at 不为空
_EFFECTIVELY_COMPLETED = and_(
    ReviewSchedule.completed == True,
    ReviewSchedule.completed_at.isnot(None),
)

_ORDERINGS = {
    "review_date": asc(ReviewSchedule.review_date),
    "-review_date": desc(ReviewSchedule.review_date),
    "review_interval": asc(ReviewSchedule.review_interval),
    "completed": asc(ReviewSchedule.completed),
    "-created_at": desc(ReviewSchedule.created_at),
    "-completed_at": desc(ReviewSchedule.completed_at),
    "id": asc(ReviewSchedule.id),
    "-id": desc(ReviewSchedule.id),
}


class ReviewRepository(BaseRepository[ReviewSchedule]):
    def __init__(self, db: Session):
        super().__init__(db, ReviewSchedule)

    def get_review(self, review_id: int) -> Optional[ReviewSchedule]:
        """根据ID获取复习项（带课程信息）"""
        return self.db.query(ReviewSchedule).options(
            joinedload(ReviewSchedule.lesson)
        ).filter(ReviewSchedule.id == review_id).first()

    def query_reviews(self, criteria: ReviewQuery) -> List[ReviewSchedule]:
        """按条件查询复习项"""
        query = self.db.query(ReviewSchedule).options(joinedload(ReviewSchedule.lesson))

        if criteria.review_date is not None:
            query = query.filter(ReviewSchedule.review_date == criteria.review_date)
        if criteria.date_from is not None:
            query = query.filter(ReviewSchedule.review_date >= criteria.date_from)
        if criteria.date_to is not None:
            query = query.filter(ReviewSchedule.review_date <= criteria.date_to)
        if criteria.date_after is not None:
            query = query.filter(ReviewSchedule.review_date > criteria.date_after)
        if criteria.date_before is not None:
            query = query.filter(ReviewSchedule.review_date < criteria.date_before)
        if criteria.completed is True:
            query = query.filter(_EFFECTIVELY_COMPLETED)
        elif criteria.completed is False:
            query = query.filter(or_(
                ReviewSchedule.completed == False,
                ReviewSchedule.completed_at.is_(None),
            ))
        if criteria.lesson_id is not None:
            query = query.filter(ReviewSchedule.lesson_id == criteria.lesson_id)

        orderings = [_ORDERINGS[name] for name in criteria.order_by]
        orderings.append(asc(ReviewSchedule.id))
        query = query.order_by(*orderings)

        if criteria.limit:
            query = query.limit(criteria.limit)

        return query.all()

    def get_reviews_by_lesson(self, lesson_id: int) -> List[ReviewSchedule]:
        """获取某课程的全部复习项"""
        return self.query_reviews(ReviewQuery(lesson_id=lesson_id, order_by=("review_interval",)))

    def mark_completed(self, review_id: int, completed_at: datetime) -> int:
        """
        原子地标记为已完成
        只更新还未完成的行，已完成的保留原有完成时间，返回受影响行数
        """
        try:
            result = self.db.execute(
                update(ReviewSchedule)
                .where(ReviewSchedule.id == review_id)
                .where(or_(
                    ReviewSchedule.completed == False,
                    ReviewSchedule.completed_at.is_(None),
                ))
                .values(completed=True, completed_at=completed_at, updated_at=completed_at)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return result.rowcount

    def overwrite_fields(self, review_id: int, **fields) -> int:
        """整行字段覆盖写，不做读-改-写"""
        try:
            result = self.db.execute(
                update(ReviewSchedule)
                .where(ReviewSchedule.id == review_id)
                .values(**fields)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return result.rowcount

    def count_completed(self) -> int:
        """已完成复习项数量"""
        return self.db.query(ReviewSchedule).filter(_EFFECTIVELY_COMPLETED).count()

    def get_completion_times_since(self, since: datetime) -> List[datetime]:
        """获取某时间之后的所有完成时间"""
        rows = self.db.query(ReviewSchedule.completed_at).filter(
            _EFFECTIVELY_COMPLETED,
            ReviewSchedule.completed_at >= since,
        ).all()
        return [row[0] for row in rows]
