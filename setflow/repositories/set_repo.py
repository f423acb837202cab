from __future__ import annotations
from typing import Optional
from sqlalchemy import select, func
from sqlalchemy.orm import Session
from setflow.models import WorkoutSet

class SetRepository:
    def __init__(self, db: Session):
        self.db = db

    def _write(self, commit: bool) -> None:
        # commit=False leaves the transaction open for the caller to commit
        if commit:
            self.db.commit()
        else:
            self.db.flush()

    def get(self, set_id: int) -> Optional[WorkoutSet]:
        return self.db.get(WorkoutSet, set_id)

    def list_by_session(self, session_id: int) -> list[WorkoutSet]:
        stmt = select(WorkoutSet).where(WorkoutSet.session_id == session_id)\
                                 .order_by(WorkoutSet.created_at.asc(), WorkoutSet.id.asc())
        return list(self.db.execute(stmt).scalars().all())

    def next_set_number(self, session_id: int, exercise_name: str) -> int:
        max_num = self.db.execute(
            select(func.max(WorkoutSet.set_number)).where(
                WorkoutSet.session_id == session_id,
                WorkoutSet.exercise_name == exercise_name,
            )
        ).scalar_one()
        return (max_num or 0) + 1

    def create(
        self,
        session_id: int,
        *,
        exercise_name: str,
        set_number: Optional[int],
        weight: float,
        reps: int,
        rpe: float | None,
        duration: int,
        commit: bool = True,
    ) -> WorkoutSet:
        if set_number is None:
            # Auto-increment based on current max for this exercise in the session
            set_number = self.next_set_number(session_id, exercise_name)

        s = WorkoutSet(
            session_id=session_id,
            exercise_name=exercise_name,
            set_number=set_number,
            weight=weight,
            reps=reps,
            rpe=rpe,
            duration=duration,
            rest_time=0,
        )
        self.db.add(s)
        self._write(commit)
        self.db.refresh(s)
        return s

    def update_rest_time(self, s: WorkoutSet, *, rest_seconds: int, commit: bool = True) -> WorkoutSet:
        # plain assignment, so repeating the call with the same value is a no-op
        s.rest_time = rest_seconds
        self._write(commit)
        self.db.refresh(s)
        return s
