import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import List, Dict, Any, Tuple
from sqlalchemy.orm import Session

import pytz

from app.config.settings import settings
from app.repositories.lesson_repository import LessonRepository
from app.repositories.review_repository import ReviewRepository
from app.scheduling.review_grouping import group_reviews_by_linked_resource
from app.services.review_service import ReviewService
from app.utils.helpers import today_local, get_local_timezone, to_local_date, format_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContributionDay:
    """某一天的完成数量"""
    date: date
    count: int
    level: int

    def to_dict(self) -> Dict[str, Any]:
        return {"date": format_date(self.date), "count": self.count, "level": self.level}


def contribution_level(count: int) -> int:
    """完成数量对应的热力图等级（0-4）"""
    if count <= 0:
        return 0
    if count == 1:
        return 1
    if count <= 3:
        return 2
    if count <= 5:
        return 3
    return 4


def calculate_streaks(contributions: List[ContributionDay], today: date) -> Tuple[int, int]:
    """
    计算连续学习天数

    Args:
        contributions: 按日期升序排列的每日完成数据
        today: 今天

    Returns:
        Tuple[int, int]: (当前连续天数, 最长连续天数)
    """
    counts = {day.date: day.count for day in contributions}

    # 当前连续：从今天往前数，今天没有完成则为0
    current_streak = 0
    check_date = today
    while counts.get(check_date, 0) > 0:
        current_streak += 1
        check_date -= timedelta(days=1)

    longest_streak = 0
    temp_streak = 0
    for day in contributions:
        if day.count > 0:
            temp_streak += 1
            longest_streak = max(longest_streak, temp_streak)
        else:
            temp_streak = 0

    return current_streak, longest_streak


class DashboardService:
    """首页数据服务：今日复习、统计、学习热力图"""

    def __init__(self, db: Session):
        self.db = db
        self.lesson_repo = LessonRepository(db)
        self.review_repo = ReviewRepository(db)
        self.review_service = ReviewService(db)

    def get_dashboard(self) -> Dict[str, Any]:
        """今日复习（已分组）、待完成数量、课程总数"""
        today_reviews = self.review_service.get_today_reviews()
        pending_count = sum(1 for review in today_reviews if not review.is_completed)

        return {
            "date": format_date(today_local()),
            "today_reviews": group_reviews_by_linked_resource(today_reviews),
            "pending_count": pending_count,
            "total_lessons": self.lesson_repo.count(),
        }

    def get_stats(self) -> Dict[str, int]:
        """课程数、复习数、已完成复习数"""
        return {
            "lessons": self.lesson_repo.count(),
            "reviews": self.review_repo.count(),
            "completed": self.review_repo.count_completed(),
        }

    def get_contributions(self, days: int = None) -> Dict[str, Any]:
        """
        最近一段时间每天完成的复习数量

        Args:
            days: 统计天数（含今天），默认取配置

        Returns:
            Dict: contributions / total_contributions / current_streak / longest_streak
        """
        days = days or settings.CONTRIBUTION_DAYS
        today = today_local()
        start_date = today - timedelta(days=days - 1)

        # 本地时区的起始零点换算成UTC再查询
        local_start = get_local_timezone().localize(datetime.combine(start_date, time.min))
        completion_times = self.review_repo.get_completion_times_since(local_start.astimezone(pytz.utc))

        counter = Counter(to_local_date(completed_at) for completed_at in completion_times)

        contributions = []
        for offset in range(days):
            day = start_date + timedelta(days=offset)
            count = counter.get(day, 0)
            contributions.append(ContributionDay(date=day, count=count, level=contribution_level(count)))

        current_streak, longest_streak = calculate_streaks(contributions, today)
        total = sum(day.count for day in contributions)
        logger.debug(f"学习热力图: {days} 天内完成 {total} 次复习")

        return {
            "contributions": [day.to_dict() for day in contributions],
            "total_contributions": total,
            "current_streak": current_streak,
            "longest_streak": longest_streak,
        }
