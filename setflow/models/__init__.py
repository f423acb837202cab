from setflow.models.user import User
from setflow.models.workout_session import SessionPhase, SessionStatus, WorkoutSession
from setflow.models.workout_set import WorkoutSet
from setflow.models.workout_feedback import WorkoutFeedback

__all__ = [
    "User",
    "SessionPhase",
    "SessionStatus",
    "WorkoutSession",
    "WorkoutSet",
    "WorkoutFeedback",
]
