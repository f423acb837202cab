from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy import select
from sqlalchemy.orm import Session

from setflow.errors import NotOwner, SessionNotFound
from setflow.models import SessionPhase, SessionStatus, WorkoutSession

class SessionRepository:
    """Reads and writes workout sessions. Doubles as the active-workout lookup."""

    def __init__(self, db: Session):
        self.db = db

    def _write(self, commit: bool) -> None:
        if commit:
            self.db.commit()
        else:
            self.db.flush()

    def get(self, session_id: int, *, for_update: bool = False) -> Optional[WorkoutSession]:
        if not for_update:
            return self.db.get(WorkoutSession, session_id)
        stmt = select(WorkoutSession).where(WorkoutSession.id == session_id).with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def get_owned(self, session_id: int, user_id: int, *, for_update: bool = False) -> WorkoutSession:
        sess = self.get(session_id, for_update=for_update)
        if sess is None:
            raise SessionNotFound(f"session {session_id} not found")
        if sess.user_id != user_id:
            raise NotOwner(f"session {session_id} belongs to another user")
        return sess

    def get_active_for_user(self, user_id: int) -> Optional[WorkoutSession]:
        # at most one in_progress session per user; newest wins if that ever breaks
        stmt = select(WorkoutSession)\
            .where(WorkoutSession.user_id == user_id, WorkoutSession.status == SessionStatus.in_progress)\
            .order_by(WorkoutSession.started_at.desc(), WorkoutSession.id.desc())\
            .limit(1)
        return self.db.execute(stmt).scalars().first()

    def list_by_user(
        self,
        user_id: int,
        *,
        status: SessionStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[WorkoutSession]:
        stmt = select(WorkoutSession).where(WorkoutSession.user_id == user_id)
        if status is not None:
            stmt = stmt.where(WorkoutSession.status == status)
        stmt = stmt.order_by(WorkoutSession.started_at.desc(), WorkoutSession.id.desc())\
                   .limit(limit).offset(offset)
        return list(self.db.execute(stmt).scalars().all())

    def create(
        self,
        user_id: int,
        *,
        title: str | None,
        started_at: datetime,
        rest_target_seconds: int | None = None,
    ) -> WorkoutSession:
        sess = WorkoutSession(
            user_id=user_id,
            title=title,
            started_at=started_at,
            rest_target_seconds=rest_target_seconds,
            phase=SessionPhase.ready,
        )
        self.db.add(sess)
        self.db.commit()
        self.db.refresh(sess)
        return sess

    def finish(self, sess: WorkoutSession, *, ended_at: datetime, commit: bool = True) -> WorkoutSession:
        sess.status = SessionStatus.completed
        sess.ended_at = ended_at
        sess.phase = SessionPhase.ready
        sess.phase_started_at = None
        sess.resting_set_id = None
        self._write(commit)
        self.db.refresh(sess)
        return sess

    def save_flow(
        self,
        sess: WorkoutSession,
        *,
        phase: SessionPhase,
        phase_started_at: datetime | None,
        resting_set_id: int | None,
        draft: dict,
        commit: bool = True,
    ) -> WorkoutSession:
        sess.phase = phase
        sess.phase_started_at = phase_started_at
        sess.resting_set_id = resting_set_id
        sess.draft = draft
        self._write(commit)
        self.db.refresh(sess)
        return sess
