from __future__ import annotations
from typing import Optional
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from setflow.models import WorkoutFeedback

class FeedbackRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_for_session(self, session_id: int) -> Optional[WorkoutFeedback]:
        stmt = select(WorkoutFeedback).where(WorkoutFeedback.session_id == session_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def create(self, session_id: int, *, feedback_text: str, score: int, source: str) -> WorkoutFeedback:
        fb = WorkoutFeedback(session_id=session_id, feedback_text=feedback_text, score=score, source=source)
        try:
            self.db.add(fb)
            self.db.commit()
        except IntegrityError:
            # another request stored feedback for this session first; keep theirs
            self.db.rollback()
            existing = self.get_for_session(session_id)
            if existing is None:
                raise
            return existing
        self.db.refresh(fb)
        return fb
