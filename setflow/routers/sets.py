from fastapi import APIRouter, Depends, status
from setflow.deps.workout import get_store
from setflow.errors import WorkoutError
from setflow.routers.errors import http_error
from setflow.schemas.workout_set import RestTimeUpdate, SetFields, SetRead
from setflow.services.store import SqlWorkoutStore

router = APIRouter(tags=["sets"])

@router.get("/sessions/{session_id}/sets", response_model=list[SetRead])
def list_sets(session_id: int, store: SqlWorkoutStore = Depends(get_store)):
    try:
        return store.list_sets(session_id)
    except WorkoutError as e:
        raise http_error(e)

@router.post("/sessions/{session_id}/sets", response_model=SetRead, status_code=status.HTTP_201_CREATED)
def add_set(session_id: int, payload: SetFields, store: SqlWorkoutStore = Depends(get_store)):
    try:
        return store.add_set(session_id, payload)
    except WorkoutError as e:
        raise http_error(e)

@router.patch("/sets/{set_id}/rest", response_model=SetRead)
def update_rest_time(set_id: int, payload: RestTimeUpdate, store: SqlWorkoutStore = Depends(get_store)):
    try:
        return store.update_set_rest_time(set_id, payload.rest_seconds)
    except WorkoutError as e:
        raise http_error(e)
