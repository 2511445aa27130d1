from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Literal

LessonTypeLiteral = Literal["link", "word", "sentence"]
DATE_REGEX = r"^\d{4}-\d{2}-\d{2}$"

class LessonBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    content: Optional[str] = None
    lesson_type: LessonTypeLiteral = "word"
    link_url: Optional[str] = None
    linked_lesson_id: Optional[int] = None

class LessonCreate(LessonBase):
    lesson_date: Optional[str] = Field(None, description="课程日期 YYYY-MM-DD，默认今天")

class LessonUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    content: Optional[str] = None
    lesson_type: Optional[LessonTypeLiteral] = None
    link_url: Optional[str] = None
    linked_lesson_id: Optional[int] = None
    lesson_date: Optional[str] = None

class LessonResponse(BaseModel):
    id: int
    title: str
    content: Optional[str] = None
    lesson_type: str
    link_url: Optional[str] = None
    linked_lesson_id: Optional[int] = None
    lesson_date: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = ConfigDict(
        from_attributes=True
    )

class LinkLessonOption(BaseModel):
    id: int
    title: str
    link_url: Optional[str] = None

class LessonListResponse(BaseModel):
    lessons: List[LessonResponse]
    total: int
