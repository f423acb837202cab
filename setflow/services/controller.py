"""
Active-workout phase machine.

    ready --start_set--> executing --complete_set--> logging
      ^                                                 |
      |                                              log_set
      |                                                 v
      +---------------finish_rest / poll----------- resting

One controller mediates one in-progress session. It owns three anchored
clocks: the workout clock runs from session start until teardown, the set
clock only while ``executing`` and the rest clock only while ``resting``.
Everything that must survive a reload (phase, the anchor of the running phase
clock, the set awaiting its rest time, the log form) is exposed through
``anchors()`` and fed back in through ``resume()``.

Events fired in the wrong phase raise ``PhaseError`` and leave the controller
untouched. A failed store call also leaves it untouched: the phase only moves
once persistence has succeeded.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Sequence

from setflow.errors import PhaseError, SetValidationError, SubmissionPending, WorkoutError
from setflow.models import SessionPhase, SessionStatus
from setflow.services import prefill
from setflow.services.prefill import SetDraft
from setflow.services.store import WorkoutStore, validate_set_fields
from setflow.services.timers import Clock, Stopwatch, as_utc, format_clock, utcnow

log = logging.getLogger(__name__)

_DRAFT_FIELDS = ("exercise_name", "set_number", "weight", "reps", "rpe", "duration")


class ConfirmationRequired(WorkoutError):
    """Finishing a workout needs an explicit confirmation from the user."""


@dataclass(frozen=True)
class FlowAnchors:
    phase: SessionPhase
    phase_started_at: Optional[datetime]
    resting_set_id: Optional[int]
    draft: dict


class WorkoutSessionController:
    def __init__(
        self,
        session_id: int,
        started_at: datetime,
        store: WorkoutStore,
        *,
        clock: Clock = utcnow,
        rest_target_seconds: Optional[int] = None,
        phase: SessionPhase = SessionPhase.ready,
        phase_started_at: Optional[datetime] = None,
        resting_set_id: Optional[int] = None,
        draft: Optional[SetDraft] = None,
        sets: Optional[Sequence] = None,
    ):
        self.session_id = session_id
        self.store = store
        self.rest_target_seconds = rest_target_seconds
        self.phase = SessionPhase(phase)
        self.resting_set_id = resting_set_id
        self.draft = draft or SetDraft()
        self.pending = False
        self.closed = False

        self.workout_clock = Stopwatch(clock, name="workout")
        self.set_clock = Stopwatch(clock, name="set")
        self.rest_clock = Stopwatch(clock, name="rest")
        self.workout_clock.start(started_at)

        # a phase clock that was running before the reload keeps its old anchor
        if self.phase == SessionPhase.executing:
            self.set_clock.start(phase_started_at)
        elif self.phase == SessionPhase.resting:
            if resting_set_id is None:
                raise ValueError("resting phase needs the set that is being rested after")
            self.rest_clock.start(phase_started_at)

        self.sets = list(sets) if sets is not None else list(store.list_sets(session_id))

    @classmethod
    def resume(cls, session, store: WorkoutStore, *, clock: Clock = utcnow, sets: Optional[Sequence] = None):
        """Rebuild the controller for a stored session row."""
        if session.status != SessionStatus.in_progress:
            raise PhaseError(f"session {session.id} is not in progress")
        return cls(
            session.id,
            as_utc(session.started_at),
            store,
            clock=clock,
            rest_target_seconds=session.rest_target_seconds,
            phase=session.phase,
            phase_started_at=as_utc(session.phase_started_at),
            resting_set_id=session.resting_set_id,
            draft=SetDraft.from_dict(session.draft),
            sets=sets,
        )

    # -- guards -------------------------------------------------------------

    def _require(self, *phases: SessionPhase) -> None:
        if self.closed:
            raise PhaseError("workout controller has been torn down")
        if self.phase not in phases:
            allowed = ", ".join(p.value for p in phases)
            raise PhaseError(f"not allowed while {self.phase.value} (needs {allowed})")

    def _move(self, phase: SessionPhase) -> None:
        log.info("session=%s phase %s -> %s", self.session_id, self.phase.value, phase.value)
        self.phase = phase

    def _resync(self) -> None:
        self.sets = list(self.store.list_sets(self.session_id))

    # -- draft --------------------------------------------------------------

    def update_draft(self, **changes) -> SetDraft:
        """Apply log-form edits. An exercise-name change re-runs prefill."""
        if self.closed:
            raise PhaseError("workout controller has been torn down")
        unknown = set(changes) - set(_DRAFT_FIELDS)
        if unknown:
            raise SetValidationError({k: "unknown field" for k in sorted(unknown)})

        draft = self.draft
        if "exercise_name" in changes and changes["exercise_name"] is not None:
            name = changes["exercise_name"].strip()
            if name != draft.exercise_name:
                draft = prefill.change_exercise(draft, name, self.sets)
        if changes.get("set_number") is not None:
            draft = prefill.edit_set_number(draft, changes["set_number"])
        for field in ("weight", "reps", "duration"):
            if changes.get(field) is not None:
                draft = replace(draft, **{field: changes[field]})
        if "rpe" in changes:
            draft = replace(draft, rpe=changes["rpe"])
        self.draft = draft
        return draft

    # -- phase events -------------------------------------------------------

    def start_set(self) -> None:
        self._require(SessionPhase.ready)
        self.set_clock.start()
        self._move(SessionPhase.executing)

    def complete_set(self) -> int:
        """Stop the set clock and put its value into the log form."""
        self._require(SessionPhase.executing)
        seconds = self.set_clock.stop()
        self.draft = prefill.refresh(replace(self.draft, duration=seconds), self.sets)
        self._move(SessionPhase.logging)
        return seconds

    def log_set(self, **changes):
        """
        Persist the drafted set and start resting.

        Validation runs before any store call. Any failure (validation,
        ownership, store outage) propagates with the controller still in
        ``logging`` and no rest clock running.
        """
        self._require(SessionPhase.logging)
        if self.pending:
            raise SubmissionPending("a set is already being saved")
        if changes:
            self.update_draft(**changes)

        draft = self.draft
        fields = validate_set_fields({
            "exercise_name": draft.exercise_name,
            "set_number": draft.set_number,
            "weight": draft.weight,
            "reps": draft.reps,
            "rpe": draft.rpe,
            "duration": draft.duration,
        })

        self.pending = True
        try:
            created = self.store.add_set(self.session_id, fields)
        finally:
            self.pending = False

        self.resting_set_id = created.id
        self._resync()
        self.draft = prefill.after_submit(draft, created)
        self.rest_clock.start()
        self._move(SessionPhase.resting)
        return created

    def finish_rest(self) -> int:
        """Record how long the user rested after the last set and go back to ready."""
        self._require(SessionPhase.resting)
        return self._end_rest(self.rest_clock.elapsed())

    def _end_rest(self, seconds: int) -> int:
        self.store.update_set_rest_time(self.resting_set_id, seconds)
        self.rest_clock.stop()
        self.resting_set_id = None
        self._resync()
        self.draft = prefill.refresh(self.draft, self.sets)
        self._move(SessionPhase.ready)
        return seconds

    def poll(self) -> bool:
        """End the rest on its own once the configured rest target has elapsed."""
        if self.closed or self.phase != SessionPhase.resting or not self.rest_target_seconds:
            return False
        if self.rest_clock.elapsed() < self.rest_target_seconds:
            return False
        # the rest ended at the target, however late this poll came
        self._end_rest(self.rest_target_seconds)
        return True

    def finish_workout(self, *, confirmed: bool):
        """Only from ``ready``; mid-set, mid-log or mid-rest finishing is refused."""
        self._require(SessionPhase.ready)
        if not confirmed:
            raise ConfirmationRequired("confirm to finish the workout")
        session = self.store.finish_session(self.session_id)
        self.teardown()
        return session

    def teardown(self) -> None:
        for clock in (self.workout_clock, self.set_clock, self.rest_clock):
            clock.cancel()
        self.closed = True

    # -- views --------------------------------------------------------------

    def _phase_anchor(self) -> Optional[datetime]:
        if self.phase == SessionPhase.executing:
            return self.set_clock.started_at
        if self.phase == SessionPhase.resting:
            return self.rest_clock.started_at
        return None

    def anchors(self) -> FlowAnchors:
        return FlowAnchors(
            phase=self.phase,
            phase_started_at=self._phase_anchor(),
            resting_set_id=self.resting_set_id,
            draft=self.draft.to_dict(),
        )

    def snapshot(self) -> dict:
        set_seconds = self.set_clock.elapsed()
        rest_seconds = self.rest_clock.elapsed()
        workout_seconds = self.workout_clock.elapsed()
        return {
            "session_id": self.session_id,
            "status": SessionStatus.completed if self.closed else SessionStatus.in_progress,
            "phase": self.phase,
            "phase_started_at": self._phase_anchor(),
            "workout_seconds": workout_seconds,
            "workout_clock": format_clock(workout_seconds),
            "set_seconds": set_seconds,
            "rest_seconds": rest_seconds,
            "phase_clock": format_clock(rest_seconds if self.phase == SessionPhase.resting else set_seconds),
            "rest_target_seconds": self.rest_target_seconds,
            "resting_set_id": self.resting_set_id,
            "draft": self.draft.to_dict(),
            "sets": list(self.sets),
        }
