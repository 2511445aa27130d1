from pydantic import BaseModel, Field
from typing import Optional

from app.api.schemas.lesson_schemas import LessonTypeLiteral

class WaitingLessonCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    content: Optional[str] = None
    lesson_type: LessonTypeLiteral = "word"
    link_url: Optional[str] = None
    planned_start_date: Optional[str] = None

class WaitingLessonUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    content: Optional[str] = None
    lesson_type: Optional[LessonTypeLiteral] = None
    link_url: Optional[str] = None
    planned_start_date: Optional[str] = None

class WaitingLessonResponse(BaseModel):
    id: int
    title: str
    content: Optional[str] = None
    lesson_type: str
    link_url: Optional[str] = None
    planned_start_date: Optional[str] = None
    created_at: Optional[str] = None

class PromoteRequest(BaseModel):
    lesson_date: Optional[str] = Field(None, description="课程日期 YYYY-MM-DD，默认今天")
