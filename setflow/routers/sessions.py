from dataclasses import asdict
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from setflow.db import get_db
from setflow.deps.auth import get_current_user
from setflow.deps.workout import get_clock, get_feedback_generator
from setflow.errors import WorkoutError
from setflow.models import SessionStatus, User
from setflow.repositories.feedback_repo import FeedbackRepository
from setflow.repositories.session_repo import SessionRepository
from setflow.repositories.set_repo import SetRepository
from setflow.routers.errors import http_error
from setflow.schemas.session import SessionCreate, SessionRead
from setflow.schemas.summary import SummaryRead
from setflow.services.feedback import FeedbackGenerator, summarize
from setflow.services.timers import Clock
from setflow.settings import get_settings

router = APIRouter(prefix="/sessions", tags=["sessions"])

@router.post("", response_model=SessionRead, status_code=status.HTTP_201_CREATED)
def start_session(
    payload: SessionCreate,
    response: Response,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    """Start a workout. With one already in progress, that one is returned instead (200)."""
    repo = SessionRepository(db)
    active = repo.get_active_for_user(current.id)
    if active:
        response.status_code = status.HTTP_200_OK
        return active
    rest_target = payload.rest_target_seconds or get_settings().DEFAULT_REST_SECONDS
    return repo.create(current.id, title=payload.title, started_at=clock(), rest_target_seconds=rest_target)

@router.get("", response_model=list[SessionRead])
def list_my_sessions(
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
    status_: SessionStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    return SessionRepository(db).list_by_user(current.id, status=status_, limit=limit, offset=offset)

@router.get("/active", response_model=SessionRead | None)
def get_active_session(db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    return SessionRepository(db).get_active_for_user(current.id)

@router.get("/{session_id}", response_model=SessionRead)
def get_session(session_id: int, db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    try:
        return SessionRepository(db).get_owned(session_id, current.id)
    except WorkoutError as e:
        raise http_error(e)

@router.get("/{session_id}/summary", response_model=SummaryRead)
def get_summary(
    session_id: int,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
    generator: FeedbackGenerator = Depends(get_feedback_generator),
):
    try:
        sess = SessionRepository(db).get_owned(session_id, current.id)
    except WorkoutError as e:
        raise http_error(e)
    if sess.status != SessionStatus.completed:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Workout is still in progress")

    sets = SetRepository(db).list_by_session(session_id)
    stats, feedback = summarize(sess, sets, generator, FeedbackRepository(db))
    return {"session": sess, "stats": asdict(stats), "feedback": feedback, "sets": sets}
