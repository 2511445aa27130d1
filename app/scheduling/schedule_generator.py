from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Tuple

from app.utils.helpers import DateInput, to_calendar_date

# 间隔复习策略：当天、1天后、3天后、7天后
REVIEW_INTERVALS: Tuple[int, ...] = (0, 1, 3, 7)


@dataclass(frozen=True)
class ScheduleEntry:
    """一次计划中的复习"""
    interval: int
    due_date: date


def generate_schedule(lesson_date: DateInput) -> List[ScheduleEntry]:
    """
    根据课程日期生成复习计划

    Args:
        lesson_date: 课程日期，可以是 date、datetime 或 YYYY-MM-DD 字符串，
                     时刻部分会被去掉

    Returns:
        List[ScheduleEntry]: 按间隔升序排列的四条复习计划
    """
    anchor = to_calendar_date(lesson_date)
    return [
        ScheduleEntry(interval=interval, due_date=anchor + timedelta(days=interval))
        for interval in REVIEW_INTERVALS
    ]


def build_review_rows(lesson_id: int, lesson_date: DateInput) -> List[dict]:
    """生成待插入的复习记录字段，全部为未完成状态"""
    return [
        {
            "lesson_id": lesson_id,
            "review_date": entry.due_date,
            "review_interval": entry.interval,
            "completed": False,
            "completed_at": None,
        }
        for entry in generate_schedule(lesson_date)
    ]
