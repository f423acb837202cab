from datetime import datetime, timezone
from enum import Enum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, ForeignKey, DateTime, String, JSON, Enum as SAEnum
from setflow.db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStatus(str, Enum):
    in_progress = "in_progress"
    completed = "completed"


class SessionPhase(str, Enum):
    ready = "ready"
    executing = "executing"
    logging = "logging"
    resting = "resting"


class WorkoutSession(Base):
    __tablename__ = "workout_sessions"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    title: Mapped[str | None] = mapped_column(String(120), nullable=True)
    status: Mapped[SessionStatus] = mapped_column(
        SAEnum(SessionStatus, name="session_status"),
        nullable=False,
        default=SessionStatus.in_progress,
        server_default=SessionStatus.in_progress.value,
    )
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Controller anchors: a reload resumes the same phase and clocks
    phase: Mapped[SessionPhase] = mapped_column(
        SAEnum(SessionPhase, name="session_phase"),
        nullable=False,
        default=SessionPhase.ready,
        server_default=SessionPhase.ready.value,
    )
    phase_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resting_set_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rest_target_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    draft: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    user = relationship("User", back_populates="workout_sessions")
    sets = relationship(
        "WorkoutSet",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="WorkoutSet.id",
    )
    feedback = relationship("WorkoutFeedback", back_populates="session", uselist=False, cascade="all, delete-orphan")
