from pydantic import BaseModel

from setflow.schemas.session import SessionRead
from setflow.schemas.workout_set import SetRead

class WorkoutStatsRead(BaseModel):
    total_sets: int
    total_volume: float
    duration_seconds: int
    duration_minutes: int
    max_weight: float
    top_exercise: str | None = None

class FeedbackRead(BaseModel):
    feedback_text: str
    score: int
    source: str

    model_config = {"from_attributes": True}

class SummaryRead(BaseModel):
    session: SessionRead
    stats: WorkoutStatsRead
    feedback: FeedbackRead
    sets: list[SetRead] = []
