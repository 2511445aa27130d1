import re
from datetime import datetime, date, timedelta
from typing import Union

import pytz

from app.config.settings import settings
from app.utils.exceptions import ValidationError

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DateInput = Union[date, datetime, str]


def get_local_timezone():
    """获取配置的本地时区"""
    return pytz.timezone(settings.TIMEZONE)


def now_utc() -> datetime:
    """当前UTC时间（带时区）"""
    return datetime.now(pytz.utc)


def today_local() -> date:
    """本地时区的今天"""
    return datetime.now(get_local_timezone()).date()


def parse_date_string(value: str) -> date:
    """
    解析 YYYY-MM-DD 格式的日期字符串

    Raises:
        ValidationError: 格式不正确或日期不存在
    """
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise ValidationError(f"日期格式错误，应为 YYYY-MM-DD: {value!r}")
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"无效的日期: {value}")


def to_calendar_date(value: DateInput) -> date:
    """
    将输入归一化为日历日期（去掉时刻部分）

    带时区的 datetime 使用它自身时区下的日期，不先转换成UTC，
    否则本地零点会变成UTC的前一天。
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return parse_date_string(value)
    raise ValidationError(f"不支持的日期类型: {type(value).__name__}")


def to_local_date(value: datetime) -> date:
    """把时间戳换算成本地时区的日期，naive 时间按UTC处理"""
    if value.tzinfo is None:
        value = pytz.utc.localize(value)
    return value.astimezone(get_local_timezone()).date()


def format_date(value: date) -> str:
    """格式化为 YYYY-MM-DD"""
    return value.strftime("%Y-%m-%d")


def format_timestamp(dt: datetime = None) -> str:
    """格式化时间戳"""
    if not dt:
        dt = now_utc()
    if dt.tzinfo is None:
        return dt.isoformat() + "Z"
    return dt.isoformat()


def month_range(year: int, month: int) -> tuple:
    """返回某月的第一天和最后一天"""
    if not 1 <= month <= 12:
        raise ValidationError(f"无效的月份: {month}")
    first_day = date(year, month, 1)
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return first_day, next_month - timedelta(days=1)
