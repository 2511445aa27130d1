import logging
from typing import List, Dict, Any
from datetime import date, timedelta
from sqlalchemy.orm import Session

from app.config.settings import settings
from app.models.review_schedule import ReviewSchedule
from app.repositories.review_repository import ReviewRepository, ReviewQuery
from app.scheduling import completion
from app.scheduling.completion import CompletionState
from app.scheduling.review_grouping import (
    GroupedReviews, group_reviews_by_linked_resource, group_reviews_by_date
)
from app.services.change_notifier import ChangeNotifier, change_notifier
from app.utils.exceptions import NotFoundError, ReviewStateError, ValidationError
from app.utils.helpers import DateInput, to_calendar_date, today_local, now_utc, month_range, format_date

logger = logging.getLogger(__name__)


class ReviewService:
    """复习服务，管理复习项的完成状态、改期以及各个视图的分组数据"""

    def __init__(self, db: Session, notifier: ChangeNotifier = None):
        self.db = db
        self.review_repo = ReviewRepository(db)
        self.notifier = notifier or change_notifier

    def get_review(self, review_id: int) -> ReviewSchedule:
        """根据ID获取复习项，不存在时抛出 NotFoundError"""
        review = self.review_repo.get_review(review_id)
        if not review:
            raise NotFoundError("复习项不存在")
        return review

    # ---- 完成状态 ----

    def mark_complete(self, review_id: int) -> ReviewSchedule:
        """
        标记复习项为已完成
        已完成的复习不会被再次写入，保留第一次的完成时间

        Args:
            review_id: 复习项ID

        Returns:
            ReviewSchedule: 更新后的复习项
        """
        review = self.get_review(review_id)
        current = CompletionState.from_review(review)
        next_state = completion.mark_complete(current, now_utc())
        if next_state == current:
            logger.info(f"复习项 {review_id} 已是完成状态，跳过")
            return review

        try:
            updated = self.review_repo.mark_completed(review_id, next_state.completed_at)
        except Exception as e:
            logger.error(f"标记复习项 {review_id} 为已完成失败: {e}")
            raise

        if updated:
            logger.info(f"复习项已完成: {review_id}")
            self.notifier.notify("review_schedule", "update", review_id)
        return self.get_review(review_id)

    def mark_incomplete(self, review_id: int) -> ReviewSchedule:
        """撤销完成，清空完成时间"""
        review = self.get_review(review_id)
        next_state = completion.mark_incomplete(CompletionState.from_review(review))

        try:
            self.review_repo.overwrite_fields(review_id, **next_state.as_fields())
        except Exception as e:
            logger.error(f"撤销复习项 {review_id} 完成状态失败: {e}")
            raise

        logger.info(f"复习项已撤销完成: {review_id}")
        self.notifier.notify("review_schedule", "update", review_id)
        return self.get_review(review_id)

    def toggle_complete(self, review_id: int) -> ReviewSchedule:
        """切换完成状态"""
        review = self.get_review(review_id)
        if CompletionState.from_review(review).is_completed:
            return self.mark_incomplete(review_id)
        return self.mark_complete(review_id)

    # ---- 改期 ----

    def reschedule(self, review_id: int, new_date: DateInput) -> ReviewSchedule:
        """
        修改复习日期，只允许未完成的复习改期，复习间隔保持不变

        Raises:
            ReviewStateError: 复习已完成
        """
        target_date = to_calendar_date(new_date)
        review = self.get_review(review_id)

        if not completion.can_reschedule(CompletionState.from_review(review)):
            raise ReviewStateError("已完成的复习不能改期")
        if review.review_date == target_date:
            return review

        try:
            self.review_repo.overwrite_fields(review_id, review_date=target_date, updated_at=now_utc())
        except Exception as e:
            logger.error(f"复习项 {review_id} 改期失败: {e}")
            raise

        logger.info(f"复习项 {review_id} 改期: {review.review_date} -> {target_date}")
        self.notifier.notify("review_schedule", "update", review_id)
        return self.get_review(review_id)

    def move_to_tomorrow(self, review_id: int) -> ReviewSchedule:
        """把复习推迟到明天"""
        return self.reschedule(review_id, today_local() + timedelta(days=1))

    def update_review(self, review_id: int, review_date: DateInput = None,
                      completed: bool = None) -> ReviewSchedule:
        """
        按请求字段更新复习项（日期和/或完成状态）
        撤销完成和改期同时请求时一次写入；标记完成在改期之后执行
        """
        if review_date is None and completed is None:
            raise ValidationError("没有可更新的字段")

        # 日期在任何写入之前校验
        target_date = to_calendar_date(review_date) if review_date is not None else None
        review = self.get_review(review_id)

        if completed is False and target_date is not None:
            return self._reopen_and_reschedule(review, target_date)

        if completed is False:
            review = self.mark_incomplete(review_id)
        if target_date is not None:
            review = self.reschedule(review_id, target_date)
        if completed is True:
            review = self.mark_complete(review_id)
        return review

    def _reopen_and_reschedule(self, review: ReviewSchedule, target_date: date) -> ReviewSchedule:
        """撤销完成并改期，一次写入"""
        next_state = completion.mark_incomplete(CompletionState.from_review(review))
        try:
            self.review_repo.overwrite_fields(
                review.id, review_date=target_date, updated_at=now_utc(), **next_state.as_fields()
            )
        except Exception as e:
            logger.error(f"复习项 {review.id} 撤销完成并改期失败: {e}")
            raise

        logger.info(f"复习项 {review.id} 已撤销完成并改期到 {target_date}")
        self.notifier.notify("review_schedule", "update", review.id)
        return self.get_review(review.id)

    def delete_review(self, review_id: int) -> bool:
        """删除单个复习项，课程保留"""
        try:
            deleted = self.review_repo.delete(review_id)
        except Exception as e:
            self.review_repo.rollback()
            logger.error(f"删除复习项 {review_id} 失败: {e}")
            raise

        if not deleted:
            raise NotFoundError("复习项不存在")

        logger.info(f"复习项已删除: {review_id}")
        self.notifier.notify("review_schedule", "delete", review_id)
        return True

    # ---- 视图 ----

    def get_today_reviews(self) -> List[ReviewSchedule]:
        """今天到期的复习，未完成在前，新创建的在前"""
        return self.review_repo.query_reviews(ReviewQuery(
            review_date=today_local(),
            order_by=("completed", "-created_at", "-id"),
        ))

    def get_reviews_overview(self) -> Dict[str, GroupedReviews]:
        """
        复习页数据：今天、未来几天、最近完成的历史
        每个范围单独分组
        """
        today = today_local()
        today_reviews = self.review_repo.query_reviews(ReviewQuery(
            review_date=today,
            order_by=("completed", "review_interval"),
        ))
        upcoming_reviews = self.review_repo.query_reviews(ReviewQuery(
            date_after=today,
            date_to=today + timedelta(days=settings.UPCOMING_DAYS),
            order_by=("review_date",),
        ))
        past_reviews = self.review_repo.query_reviews(ReviewQuery(
            date_before=today,
            completed=True,
            order_by=("-completed_at",),
            limit=settings.PAST_REVIEWS_LIMIT,
        ))

        return {
            "today": group_reviews_by_linked_resource(today_reviews),
            "upcoming": group_reviews_by_linked_resource(upcoming_reviews),
            "past": group_reviews_by_linked_resource(past_reviews),
        }

    def get_reviews_for_date(self, review_date: DateInput) -> GroupedReviews:
        """某一天的复习（日历单日页面）"""
        reviews = self.review_repo.query_reviews(ReviewQuery(
            review_date=to_calendar_date(review_date),
            order_by=("completed", "review_interval"),
        ))
        return group_reviews_by_linked_resource(reviews)

    def get_calendar_month(self, year: int, month: int) -> Dict[str, Any]:
        """某月日历数据，按天分桶并逐天分组"""
        first_day, last_day = month_range(year, month)
        reviews = self.review_repo.query_reviews(ReviewQuery(
            date_from=first_day,
            date_to=last_day,
            order_by=("review_date", "review_interval"),
        ))
        completed_count = sum(1 for review in reviews if review.is_completed)

        return {
            "year": year,
            "month": month,
            "start_date": format_date(first_day),
            "end_date": format_date(last_day),
            "days": group_reviews_by_date(reviews),
            "completed_count": completed_count,
            "pending_count": len(reviews) - completed_count,
        }
