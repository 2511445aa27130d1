"""
复习分组

同一天到期的单词/句子复习，如果它的课程关联了某个链接课程，
并且该链接课程在同一列表中也有同一天的复习，就把它挂到那个链接复习下面显示。
分组只在读取时计算，不落库；每个调用方传入自己的范围（今天、本月……）。
"""
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from app.models.lesson import LessonType


@dataclass
class GroupedReviews:
    """分组结果"""
    display_reviews: List[Any] = field(default_factory=list)
    children_by_parent_id: Dict[Any, List[Any]] = field(default_factory=dict)

    def children_of(self, review_id) -> List[Any]:
        """父复习的子项，没有子项时返回空列表"""
        return self.children_by_parent_id.get(review_id, [])


def _get(obj, name: str, default=None):
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _lesson_of(review):
    """复习所属课程，兼容 ORM 对象(.lesson) 和字典(lessons)"""
    lesson = _get(review, "lessons")
    if lesson is None:
        lesson = _get(review, "lesson")
    return lesson


def _date_key(value) -> Optional[str]:
    if isinstance(value, date):
        return value.isoformat()
    return value


def _review_key(lesson_id, review_date) -> Tuple[Any, Optional[str]]:
    return lesson_id, _date_key(review_date)


def group_reviews_by_linked_resource(reviews: Sequence[Any]) -> GroupedReviews:
    """
    把单词/句子复习挂到同一天到期的关联链接复习下面

    Args:
        reviews: 复习列表，ORM 对象或字典都可以

    Returns:
        GroupedReviews: display_reviews 为顶层复习（保持原顺序），
                        children_by_parent_id 为 父复习ID -> 子复习列表
    """
    link_review_by_key: Dict[Tuple[Any, Optional[str]], Any] = {}
    children_by_parent_id: Dict[Any, List[Any]] = {}
    hidden_child_ids = set()

    # 第一遍：索引链接类型的复习，重复的键后出现的覆盖先出现的
    for review in reviews:
        lesson = _lesson_of(review)
        lesson_id = _get(lesson, "id")
        if not lesson_id:
            continue
        if _get(lesson, "lesson_type") != LessonType.LINK.value:
            continue
        link_review_by_key[_review_key(lesson_id, _get(review, "review_date"))] = review

    # 第二遍：按 (关联课程ID, 本复习日期) 查找父复习
    for review in reviews:
        parent_lesson_id = _get(_lesson_of(review), "linked_lesson_id")
        if not parent_lesson_id:
            continue
        parent_review = link_review_by_key.get(
            _review_key(parent_lesson_id, _get(review, "review_date"))
        )
        if parent_review is None:
            continue

        children_by_parent_id.setdefault(_get(parent_review, "id"), []).append(review)
        hidden_child_ids.add(_get(review, "id"))

    display_reviews = [review for review in reviews if _get(review, "id") not in hidden_child_ids]

    return GroupedReviews(
        display_reviews=display_reviews,
        children_by_parent_id=children_by_parent_id,
    )


def group_reviews_by_date(reviews: Sequence[Any]) -> "OrderedDict[str, GroupedReviews]":
    """按到期日期分桶，每一天单独分组（日历视图使用）"""
    buckets: "OrderedDict[str, List[Any]]" = OrderedDict()
    for review in reviews:
        buckets.setdefault(_date_key(_get(review, "review_date")), []).append(review)

    return OrderedDict(
        (day, group_reviews_by_linked_resource(day_reviews))
        for day, day_reviews in buckets.items()
    )
