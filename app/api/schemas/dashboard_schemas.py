from pydantic import BaseModel
from typing import List

from app.api.schemas.review_schemas import GroupedReviewsResponse

class DashboardResponse(BaseModel):
    date: str
    today_reviews: GroupedReviewsResponse
    pending_count: int
    total_lessons: int

class StatsResponse(BaseModel):
    lessons: int
    reviews: int
    completed: int

class ContributionDayResponse(BaseModel):
    date: str
    count: int
    level: int

class ContributionsResponse(BaseModel):
    contributions: List[ContributionDayResponse]
    total_contributions: int
    current_streak: int
    longest_streak: int
