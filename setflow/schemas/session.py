from typing import Annotated
from datetime import datetime
from pydantic import BaseModel, Field

from setflow.models import SessionPhase, SessionStatus

# Titles: trimmed, up to 120 chars
TitleStr = Annotated[str, Field(strip_whitespace=True, max_length=120)]

class SessionCreate(BaseModel):
    title: TitleStr | None = None
    # auto-end rest after this many seconds; None falls back to DEFAULT_REST_SECONDS
    rest_target_seconds: Annotated[int, Field(ge=1, le=3600)] | None = None

class SessionRead(BaseModel):
    id: int
    user_id: int
    title: str | None = None
    status: SessionStatus
    phase: SessionPhase
    started_at: datetime
    ended_at: datetime | None = None

    model_config = {"from_attributes": True}
