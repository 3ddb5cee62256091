from datetime import date

from pydantic import BaseModel, Field


class Task(BaseModel):
    name: str
    done: bool = False


class ProgressState(BaseModel):
    level: int = 1
    xp: int = 0
    streak: int = 0
    last_date: date
    daily_quests: list[Task] = Field(default_factory=list)
    custom_tasks: list[Task] = Field(default_factory=list)

    @property
    def tasks_completed(self) -> int:
        return sum(1 for task in [*self.daily_quests, *self.custom_tasks] if task.done)


class StateLoadResponse(BaseModel):
    exists: bool
    state: ProgressState | None = None


class StateSaveRequest(ProgressState):
    user_id: str | None = None

    def to_state(self) -> ProgressState:
        return ProgressState.model_validate(self.model_dump(exclude={"user_id"}))


class AckResponse(BaseModel):
    success: bool = True
