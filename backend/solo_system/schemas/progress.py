import datetime

from pydantic import BaseModel, Field


class ProgressEntry(BaseModel):
    date: datetime.date
    level: int
    xp: int
    tasks_completed: int
    streak: int


class ProgressListResponse(BaseModel):
    progress: list[ProgressEntry] = Field(default_factory=list)


class ProgressAppendRequest(BaseModel):
    user_id: str | None = None
    entry: ProgressEntry | None = None
