from pydantic import BaseModel, ConfigDict
from typing import List, Dict, Optional

from app.api.schemas.lesson_schemas import LessonResponse
from app.scheduling.review_grouping import GroupedReviews

class ReviewResponse(BaseModel):
    id: int
    lesson_id: int
    review_date: str
    review_interval: int
    completed: bool
    completed_at: Optional[str] = None
    lessons: Optional[LessonResponse] = None

    model_config = ConfigDict(
        from_attributes=True
    )

class GroupedReviewsResponse(BaseModel):
    display_reviews: List[ReviewResponse]
    children_by_parent_id: Dict[int, List[ReviewResponse]]

class ReviewsOverviewResponse(BaseModel):
    today: GroupedReviewsResponse
    upcoming: GroupedReviewsResponse
    past: GroupedReviewsResponse

class CalendarMonthResponse(BaseModel):
    year: int
    month: int
    start_date: str
    end_date: str
    days: Dict[str, GroupedReviewsResponse]
    completed_count: int
    pending_count: int

class ReviewUpdateRequest(BaseModel):
    review_date: Optional[str] = None
    completed: Optional[bool] = None


def serialize_grouped(grouped: GroupedReviews) -> dict:
    """把分组结果转换为可返回的字典"""
    return {
        "display_reviews": [review.to_dict() for review in grouped.display_reviews],
        "children_by_parent_id": {
            parent_id: [child.to_dict() for child in children]
            for parent_id, children in grouped.children_by_parent_id.items()
        },
    }
