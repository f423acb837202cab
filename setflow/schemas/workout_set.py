from typing import Annotated
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

# Keep max length via Field
ExerciseStr = Annotated[str, Field(max_length=120)]
PosInt = Annotated[int, Field(ge=1)]
NonNegInt = Annotated[int, Field(ge=0)]
NonNegFloat = Annotated[float, Field(ge=0, le=1000)]
Rpe = Annotated[float, Field(ge=0, le=10)]

class SetFields(BaseModel):
    """One set as submitted from the log form. Checked again by the store."""
    exercise_name: ExerciseStr
    weight: NonNegFloat = 0
    reps: PosInt
    rpe: Rpe | None = None
    duration: NonNegInt = 0
    # omitted -> the store assigns the next number for this exercise
    set_number: PosInt | None = None

    @field_validator("exercise_name")
    @classmethod
    def exercise_non_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("exercise_name cannot be blank")
        return v2

class SetRead(BaseModel):
    id: int
    session_id: int
    exercise_name: str
    set_number: int
    weight: float
    reps: int
    rpe: float | None = None
    duration: int
    rest_time: int
    created_at: datetime

    model_config = {"from_attributes": True}

class RestTimeUpdate(BaseModel):
    rest_seconds: NonNegInt
