# setflow/main.py
import time
import logging
import uuid
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from setflow.routers.auth import router as auth_router
from setflow.routers.sessions import router as sessions_router
from setflow.routers.sets import router as sets_router
from setflow.routers.flow import router as flow_router
from setflow.db import SessionLocal  # for healthz DB check
from setflow.settings import get_settings

log = logging.getLogger("uvicorn")

app = FastAPI(
    title="SetFlow API",
    openapi_tags=[
        {"name": "auth", "description": "Registration & login"},
        {"name": "sessions", "description": "Workout sessions and post-workout summary"},
        {"name": "sets", "description": "Logged sets per session"},
        {"name": "flow", "description": "Active workout: phases, timers and set logging"},
    ],
)


# CORS (relax for local dev; tighten origins in prod via ALLOW_ORIGINS)
ALLOW_ORIGINS = get_settings().ALLOW_ORIGINS.split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.middleware("http")
async def add_request_id_and_log(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = req_id
    log.info("rid=%s %s %s -> %s in %.1fms",
             req_id, request.method, request.url.path, response.status_code, duration_ms)
    return response

@app.get("/")
def root():
    return {"ok": True, "name": "SetFlow API"}

@app.get("/ping")
def ping():
    return {"pong": True}

@app.get("/healthz")
def healthz():
    # Quick DB sanity check
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        return {"status": "ok"}
    except Exception as e:
        return {"status": "degraded", "error": str(e)}

@app.get("/version")
def version():
    return {"version": get_settings().API_VERSION}

# Routers
app.include_router(auth_router)
app.include_router(sessions_router)
app.include_router(sets_router)
app.include_router(flow_router)
