from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient
from setflow.main import app
from setflow.deps.workout import get_clock
import json, uuid, pytest

client = TestClient(app)
T0 = datetime(2026, 1, 5, 9, 0, 0, tzinfo=timezone.utc)

class FakeClock:
    def __init__(self): self.now = T0
    def __call__(self): return self.now
    def advance(self, seconds): self.now += timedelta(seconds=seconds)

@pytest.fixture
def clock():
    c = FakeClock()
    app.dependency_overrides[get_clock] = lambda: c
    yield c
    app.dependency_overrides.pop(get_clock, None)

def unique_email():
    return f"u_{uuid.uuid4().hex[:10]}@ex.com"

def login_headers():
    email = unique_email()
    pwd = "StrongPassw0rd!"
    client.post("/auth/register", json={"email": email, "name": "Ok", "password": pwd})
    r = client.post("/auth/login", json={"email": email, "password": pwd})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['access_token']}"}

def start_session(H, **body):
    r = client.post("/sessions", headers=H, json={"title": "Legs", **body})
    assert r.status_code == 201, r.text
    return r.json()["id"]

def flow(sid, H, event=None, method="post", **kw):
    url = f"/sessions/{sid}/flow" + (f"/{event}" if event else "")
    return getattr(client, method)(url, headers=H, **kw)

def work_set(sid, H, clock, seconds=20, **draft):
    assert flow(sid, H, "start-set").status_code == 200
    clock.advance(seconds)
    assert flow(sid, H, "complete-set").status_code == 200
    if draft:
        assert flow(sid, H, "draft", method="patch", json=draft).status_code == 200
    r = flow(sid, H, "log-set")
    assert r.status_code == 201, r.text
    return r.json()

def test_first_set_round_trip(clock):
    H = login_headers()
    sid = start_session(H)

    clock.advance(40)
    r = flow(sid, H, "start-set")
    assert r.json()["phase"] == "executing"
    clock.advance(20)
    r = flow(sid, H, "complete-set")
    body = r.json()
    assert body["phase"] == "logging"
    assert body["draft"]["duration"] == 20

    r = flow(sid, H, "draft", method="patch", json={"exercise_name": "Squat", "weight": 100, "reps": 5})
    assert r.status_code == 200
    assert r.json()["set_number"] == 1

    r = flow(sid, H, "log-set")
    assert r.status_code == 201
    logged = r.json()
    assert (logged["exercise_name"], logged["set_number"], logged["duration"], logged["rest_time"]) == ("Squat", 1, 20, 0)

    snap = flow(sid, H, method="get").json()
    assert snap["phase"] == "resting"
    assert snap["resting_set_id"] == logged["id"]

    clock.advance(90)
    r = flow(sid, H, "finish-rest")
    assert r.json()["phase"] == "ready"
    assert r.json()["workout_seconds"] == 150
    assert r.json()["workout_clock"] == "02:30"

    sets = client.get(f"/sessions/{sid}/sets", headers=H).json()
    assert [s["rest_time"] for s in sets] == [90]

def test_next_set_is_prefilled_and_exercise_switch_renumbers(clock):
    H = login_headers()
    sid = start_session(H)
    work_set(sid, H, clock, exercise_name="Squat", weight=100, reps=5)
    flow(sid, H, "finish-rest")

    flow(sid, H, "start-set")
    clock.advance(25)
    draft = flow(sid, H, "complete-set").json()["draft"]
    assert (draft["exercise_name"], draft["set_number"], draft["weight"], draft["reps"], draft["duration"]) == ("Squat", 2, 100, 5, 25)
    assert flow(sid, H, "log-set").json()["set_number"] == 2
    flow(sid, H, "finish-rest")

    flow(sid, H, "start-set")
    flow(sid, H, "complete-set")
    r = flow(sid, H, "draft", method="patch", json={"exercise_name": "Bench Press"})
    assert r.json()["set_number"] == 1
    r = flow(sid, H, "draft", method="patch", json={"exercise_name": "Squat"})
    assert r.json()["set_number"] == 3

def test_log_set_accepts_last_second_edits(clock):
    H = login_headers()
    sid = start_session(H)
    flow(sid, H, "start-set")
    flow(sid, H, "complete-set")
    r = flow(sid, H, "log-set", json={"exercise_name": "Pull-up", "reps": 8})
    assert r.status_code == 201
    assert r.json()["weight"] == 0 and r.json()["reps"] == 8

def test_reload_keeps_phase_and_clock(clock):
    H = login_headers()
    sid = start_session(H)
    flow(sid, H, "start-set")
    clock.advance(33)
    snap = flow(sid, H, method="get").json()
    assert snap["phase"] == "executing"
    assert snap["set_seconds"] == 33
    assert snap["phase_clock"] == "00:33"

def test_rest_ends_itself_at_target(clock):
    H = login_headers()
    sid = start_session(H, rest_target_seconds=60)
    work_set(sid, H, clock, exercise_name="Row", weight=60, reps=10)
    clock.advance(75)
    snap = flow(sid, H, method="get").json()
    assert snap["phase"] == "ready"
    assert snap["sets"][0]["rest_time"] == 60

def test_rest_checked_long_after_target_records_target(clock):
    H = login_headers()
    sid = start_session(H, rest_target_seconds=60)
    work_set(sid, H, clock, exercise_name="Squat", weight=100, reps=5)
    clock.advance(600)
    snap = flow(sid, H, method="get").json()
    assert snap["phase"] == "ready"
    assert [s["rest_time"] for s in snap["sets"]] == [60]

def test_finish_and_summary(clock):
    H = login_headers()
    sid = start_session(H)
    work_set(sid, H, clock, exercise_name="Squat", weight=100, reps=5)
    clock.advance(60)
    flow(sid, H, "finish-rest")
    work_set(sid, H, clock, exercise_name="Squat", weight=100, reps=5)
    flow(sid, H, "finish-rest")
    work_set(sid, H, clock, exercise_name="Bench Press", weight=80, reps=8)
    flow(sid, H, "finish-rest")

    assert flow(sid, H, "finish", json={}).status_code == 400
    clock.advance(30 * 60)
    r = flow(sid, H, "finish", json={"confirm": True})
    assert r.status_code == 200
    assert r.json()["status"] == "completed"
    assert r.json()["ended_at"] is not None

    r = client.get(f"/sessions/{sid}/summary", headers=H)
    assert r.status_code == 200
    body = r.json()
    stats = body["stats"]
    assert stats["total_sets"] == 3
    assert stats["total_volume"] == 100 * 5 * 2 + 80 * 8
    assert stats["top_exercise"] == "Squat"
    assert stats["max_weight"] == 100
    assert stats["duration_minutes"] == 32
    assert body["feedback"]["source"] == "fallback"
    assert 0 <= body["feedback"]["score"] <= 100
    assert [s["exercise_name"] for s in body["sets"]] == ["Squat", "Squat", "Bench Press"]

    again = client.get(f"/sessions/{sid}/summary", headers=H).json()
    assert again["feedback"] == body["feedback"]

def test_session_listing_and_active(clock):
    H = login_headers()
    assert client.get("/sessions/active", headers=H).json() is None
    sid = start_session(H)
    r = client.post("/sessions", headers=H, json={"title": "again"})
    assert r.status_code == 200 and r.json()["id"] == sid
    assert client.get("/sessions/active", headers=H).json()["id"] == sid
    flow(sid, H, "finish", json={"confirm": True})
    assert client.get("/sessions/active", headers=H).json() is None
    listed = client.get("/sessions", headers=H, params={"status": "completed"}).json()
    assert [s["id"] for s in listed] == [sid]
    assert client.get("/sessions", headers=H, params={"status": "in_progress"}).json() == []

def test_stream_ends_for_completed_session(clock):
    H = login_headers()
    sid = start_session(H)
    flow(sid, H, "finish", json={"confirm": True})
    r = client.get(f"/sessions/{sid}/flow/stream", headers=H)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/event-stream")
    events = [json.loads(line[len("data: "):]) for line in r.text.splitlines() if line.startswith("data: ")]
    assert events == [{"session_id": sid, "status": "completed"}]

def test_requires_auth():
    # no token -> 401s
    assert client.get("/sessions").status_code == 401
    assert client.post("/sessions", json={"title": "x"}).status_code == 401
    assert client.get("/sessions/1/flow").status_code == 401
