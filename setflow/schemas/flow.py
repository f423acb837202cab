from typing import Annotated
from datetime import datetime
from pydantic import BaseModel, Field

from setflow.models import SessionPhase, SessionStatus
from setflow.schemas.workout_set import SetRead

class DraftRead(BaseModel):
    exercise_name: str
    set_number: int
    weight: float
    reps: int
    rpe: float | None = None
    duration: int
    set_number_edited: bool = False

class DraftUpdate(BaseModel):
    """Partial edit of the log form. Only fields that are sent are applied."""
    exercise_name: Annotated[str, Field(max_length=120)] | None = None
    set_number: Annotated[int, Field(ge=1)] | None = None
    weight: Annotated[float, Field(ge=0, le=1000)] | None = None
    reps: Annotated[int, Field(ge=0)] | None = None
    rpe: Annotated[float, Field(ge=0, le=10)] | None = None
    duration: Annotated[int, Field(ge=0)] | None = None

class FinishRequest(BaseModel):
    confirm: bool = False

class FlowSnapshot(BaseModel):
    session_id: int
    status: SessionStatus
    phase: SessionPhase
    phase_started_at: datetime | None = None
    workout_seconds: int
    workout_clock: str
    set_seconds: int
    rest_seconds: int
    phase_clock: str
    rest_target_seconds: int | None = None
    resting_set_id: int | None = None
    draft: DraftRead
    sets: list[SetRead] = []
