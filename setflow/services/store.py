"""
Persistence boundary for the workout flow.

``WorkoutStore`` is what the session controller talks to. ``SqlWorkoutStore``
is the database-backed implementation, bound to the requesting user so every
call carries its own ownership check, and it re-validates set fields because
nothing the client sends is trusted.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Mapping, Protocol, Sequence

from pydantic import ValidationError
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from setflow.errors import NotOwner, SessionClosed, SetNotFound, SetValidationError, StoreUnavailable
from setflow.models import SessionStatus, WorkoutSession, WorkoutSet
from setflow.repositories.session_repo import SessionRepository
from setflow.repositories.set_repo import SetRepository
from setflow.schemas.workout_set import SetFields
from setflow.services.timers import Clock, utcnow

log = logging.getLogger(__name__)


class WorkoutStore(Protocol):
    def add_set(self, session_id: int, fields: SetFields | Mapping[str, Any]) -> WorkoutSet: ...

    def update_set_rest_time(self, set_id: int, rest_seconds: int) -> WorkoutSet: ...

    def finish_session(self, session_id: int) -> WorkoutSession: ...

    def list_sets(self, session_id: int) -> Sequence[WorkoutSet]: ...


def validate_set_fields(data: SetFields | Mapping[str, Any]) -> SetFields:
    if isinstance(data, SetFields):
        data = data.model_dump()
    try:
        return SetFields.model_validate(data)
    except ValidationError as e:
        errors = {}
        for err in e.errors():
            field = ".".join(str(p) for p in err["loc"]) or "set"
            errors.setdefault(field, err["msg"])
        raise SetValidationError(errors) from e


class SqlWorkoutStore:
    def __init__(self, db: Session, user_id: int, *, clock: Clock = utcnow):
        self.db = db
        self.user_id = user_id
        self._clock = clock
        self.sessions = SessionRepository(db)
        self.sets = SetRepository(db)
        # False inside transaction(): writes are flushed and committed together at the end
        self.autocommit = True

    @contextmanager
    def _guard(self, op: str):
        try:
            yield
        except OperationalError as e:
            self.db.rollback()
            log.warning("store %s failed for user=%s: %s", op, self.user_id, e)
            raise StoreUnavailable(f"{op} failed, try again") from e

    @contextmanager
    def transaction(self, op: str):
        """
        Run every store write inside the block as one database transaction.

        The set insert or rest-time patch and the controller anchors land in a
        single commit, so a session row locked ``FOR UPDATE`` stays locked
        until the phase has moved on. Any error rolls the whole block back.
        """
        self.autocommit = False
        try:
            with self._guard(op):
                try:
                    yield self
                    self.db.commit()
                except Exception:
                    self.db.rollback()
                    raise
        finally:
            self.autocommit = True

    def save_anchors(self, sess: WorkoutSession, anchors) -> WorkoutSession:
        with self._guard("save_anchors"):
            return self.sessions.save_flow(
                sess,
                phase=anchors.phase,
                phase_started_at=anchors.phase_started_at,
                resting_set_id=anchors.resting_set_id,
                draft=anchors.draft,
                commit=self.autocommit,
            )

    def add_set(self, session_id: int, fields: SetFields | Mapping[str, Any]) -> WorkoutSet:
        values = validate_set_fields(fields)
        with self._guard("add_set"):
            sess = self.sessions.get_owned(session_id, self.user_id, for_update=True)
            if sess.status != SessionStatus.in_progress:
                raise SessionClosed(f"session {session_id} is already completed")
            created = self.sets.create(
                session_id,
                exercise_name=values.exercise_name,
                set_number=values.set_number,
                weight=values.weight,
                reps=values.reps,
                rpe=values.rpe,
                duration=values.duration,
                commit=self.autocommit,
            )
        log.info("set added session=%s set=%s %s #%s", session_id, created.id,
                 created.exercise_name, created.set_number)
        return created

    def update_set_rest_time(self, set_id: int, rest_seconds: int) -> WorkoutSet:
        if rest_seconds < 0:
            raise SetValidationError({"rest_seconds": "must be greater than or equal to 0"})
        with self._guard("update_set_rest_time"):
            s = self.sets.get(set_id)
            if s is None:
                raise SetNotFound(f"set {set_id} not found")
            sess = self.sessions.get(s.session_id)
            if sess is None or sess.user_id != self.user_id:
                raise NotOwner(f"set {set_id} belongs to another user")
            return self.sets.update_rest_time(s, rest_seconds=rest_seconds, commit=self.autocommit)

    def finish_session(self, session_id: int) -> WorkoutSession:
        with self._guard("finish_session"):
            sess = self.sessions.get_owned(session_id, self.user_id, for_update=True)
            if sess.status == SessionStatus.completed:
                return sess
            sess = self.sessions.finish(sess, ended_at=self._clock(), commit=self.autocommit)
        log.info("session finished session=%s user=%s", session_id, self.user_id)
        return sess

    def list_sets(self, session_id: int) -> list[WorkoutSet]:
        with self._guard("list_sets"):
            self.sessions.get_owned(session_id, self.user_id)
            return self.sets.list_by_session(session_id)
