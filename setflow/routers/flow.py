"""
Active-workout endpoints.

Each request rebuilds a ``WorkoutSessionController`` from the anchors stored on
the session row, fires one event and writes the anchors back, so the phase and
the running clock survive reloads and device switches. The event's writes and
the new anchors commit as one transaction under the session row lock.
"""
import json
import logging
from contextlib import contextmanager

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from setflow.db import SessionLocal, get_db
from setflow.deps.auth import get_current_user
from setflow.deps.workout import get_clock, get_store
from setflow.errors import WorkoutError
from setflow.models import SessionStatus, User, WorkoutSession
from setflow.repositories.session_repo import SessionRepository
from setflow.routers.errors import http_error
from setflow.schemas.flow import DraftRead, DraftUpdate, FinishRequest, FlowSnapshot
from setflow.schemas.session import SessionRead
from setflow.schemas.workout_set import SetRead
from setflow.services.controller import WorkoutSessionController
from setflow.services.store import SqlWorkoutStore
from setflow.services.timers import Clock, tick
from setflow.settings import get_settings

log = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions/{session_id}/flow", tags=["flow"])


@contextmanager
def _domain_errors():
    try:
        yield
    except WorkoutError as e:
        raise http_error(e)


def _save(store: SqlWorkoutStore, sess: WorkoutSession, ctl: WorkoutSessionController) -> None:
    store.save_anchors(sess, ctl.anchors())


def _open(db: Session, session_id: int, store: SqlWorkoutStore, clock: Clock, *, for_update: bool = False):
    sess = SessionRepository(db).get_owned(session_id, store.user_id, for_update=for_update)
    ctl = WorkoutSessionController.resume(sess, store, clock=clock)
    # a rest that ran past its target ends on the next look at the session
    if ctl.poll():
        _save(store, sess, ctl)
    return sess, ctl


def _snapshot(ctl: WorkoutSessionController) -> FlowSnapshot:
    return FlowSnapshot.model_validate(ctl.snapshot(), from_attributes=True)


@router.get("", response_model=FlowSnapshot)
def get_flow(
    session_id: int,
    db: Session = Depends(get_db),
    store: SqlWorkoutStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
):
    with _domain_errors(), store.transaction("get_flow"):
        _, ctl = _open(db, session_id, store, clock)
        return _snapshot(ctl)


@router.post("/start-set", response_model=FlowSnapshot)
def start_set(
    session_id: int,
    db: Session = Depends(get_db),
    store: SqlWorkoutStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
):
    with _domain_errors(), store.transaction("start_set"):
        sess, ctl = _open(db, session_id, store, clock, for_update=True)
        ctl.start_set()
        _save(store, sess, ctl)
        return _snapshot(ctl)


@router.post("/complete-set", response_model=FlowSnapshot)
def complete_set(
    session_id: int,
    db: Session = Depends(get_db),
    store: SqlWorkoutStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
):
    with _domain_errors(), store.transaction("complete_set"):
        sess, ctl = _open(db, session_id, store, clock, for_update=True)
        ctl.complete_set()
        _save(store, sess, ctl)
        return _snapshot(ctl)


@router.patch("/draft", response_model=DraftRead)
def update_draft(
    session_id: int,
    payload: DraftUpdate,
    db: Session = Depends(get_db),
    store: SqlWorkoutStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
):
    with _domain_errors(), store.transaction("update_draft"):
        sess, ctl = _open(db, session_id, store, clock, for_update=True)
        draft = ctl.update_draft(**payload.model_dump(exclude_unset=True))
        _save(store, sess, ctl)
        return draft.to_dict()


@router.post("/log-set", response_model=SetRead, status_code=201)
def log_set(
    session_id: int,
    payload: DraftUpdate | None = None,
    db: Session = Depends(get_db),
    store: SqlWorkoutStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
):
    """Save the drafted set (last-second edits may ride along) and start the rest clock."""
    with _domain_errors(), store.transaction("log_set"):
        sess, ctl = _open(db, session_id, store, clock, for_update=True)
        changes = payload.model_dump(exclude_unset=True) if payload else {}
        created = ctl.log_set(**changes)
        _save(store, sess, ctl)
        return created


@router.post("/finish-rest", response_model=FlowSnapshot)
def finish_rest(
    session_id: int,
    db: Session = Depends(get_db),
    store: SqlWorkoutStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
):
    with _domain_errors(), store.transaction("finish_rest"):
        sess, ctl = _open(db, session_id, store, clock, for_update=True)
        ctl.finish_rest()
        _save(store, sess, ctl)
        return _snapshot(ctl)


@router.post("/finish", response_model=SessionRead)
def finish_workout(
    session_id: int,
    payload: FinishRequest,
    db: Session = Depends(get_db),
    store: SqlWorkoutStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
):
    with _domain_errors(), store.transaction("finish_workout"):
        _, ctl = _open(db, session_id, store, clock, for_update=True)
        return ctl.finish_workout(confirmed=payload.confirm)


@router.get("/stream")
async def stream_flow(
    session_id: int,
    current: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    """Server-sent events: one flow snapshot per tick until the workout ends."""
    user_id = current.id

    def load() -> dict:
        with SessionLocal() as db:
            sess = SessionRepository(db).get_owned(session_id, user_id)
            if sess.status != SessionStatus.in_progress:
                return {"session_id": sess.id, "status": sess.status.value}
            store = SqlWorkoutStore(db, user_id, clock=clock)
            with store.transaction("stream"):
                _, ctl = _open(db, session_id, store, clock)
                return _snapshot(ctl).model_dump(mode="json")

    with _domain_errors():
        await run_in_threadpool(load)

    async def events():
        ticks = tick(
            lambda: run_in_threadpool(load),
            interval=get_settings().CLOCK_TICK_SECONDS,
            should_stop=lambda snap: snap["status"] != SessionStatus.in_progress.value,
        )
        try:
            async for snap in ticks:
                yield f"data: {json.dumps(snap)}\n\n"
        except WorkoutError as e:
            log.warning("flow stream for session=%s ended: %s", session_id, e)
            yield f"data: {json.dumps({'type': 'error', 'message': str(e)})}\n\n"
        finally:
            await ticks.aclose()

    return StreamingResponse(events(), media_type="text/event-stream", headers={"Cache-Control": "no-cache"})
