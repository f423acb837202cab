# setflow/deps/workout.py
from fastapi import Depends
from sqlalchemy.orm import Session

from setflow.db import get_db
from setflow.deps.auth import get_current_user
from setflow.models import User
from setflow.services.feedback import FeedbackGenerator
from setflow.services.store import SqlWorkoutStore
from setflow.services.timers import Clock, utcnow
from setflow.settings import get_settings

def get_clock() -> Clock:
    """Wall clock for timers and timestamps. Tests override this."""
    return utcnow

def get_store(
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
) -> SqlWorkoutStore:
    return SqlWorkoutStore(db, current.id, clock=clock)

def get_feedback_generator() -> FeedbackGenerator:
    s = get_settings()
    return FeedbackGenerator(s.GEMINI_API_KEY, model=s.GEMINI_MODEL, timeout=s.GEMINI_TIMEOUT_SECONDS)
