"""
Post-workout summary and feedback.

Stats are computed locally from the session's sets. The feedback text and score
come from Gemini when an API key is configured; when it is not, or when the
call fails or answers with something unusable, a deterministic fallback built
from the same stats is returned instead.
"""
from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Iterable, Optional

import httpx

from setflow.services.timers import as_utc, elapsed_seconds

log = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


@dataclass(frozen=True)
class WorkoutStats:
    total_sets: int
    total_volume: float
    duration_seconds: int
    duration_minutes: int
    max_weight: float
    top_exercise: Optional[str]


@dataclass(frozen=True)
class Feedback:
    feedback_text: str
    score: int
    source: str


def compute_stats(sets: Iterable, started_at: datetime, ended_at: Optional[datetime]) -> WorkoutStats:
    sets = list(sets)
    duration = elapsed_seconds(started_at, ended_at) if ended_at else 0
    volume = sum(float(s.weight or 0) * int(s.reps or 0) for s in sets)
    counts = Counter(s.exercise_name for s in sets)
    # ties go to the exercise that was logged first
    top = max(counts, key=lambda name: counts[name]) if counts else None
    return WorkoutStats(
        total_sets=len(sets),
        total_volume=round(volume, 2),
        duration_seconds=duration,
        duration_minutes=duration // 60,
        max_weight=max((float(s.weight or 0) for s in sets), default=0.0),
        top_exercise=top,
    )


def fallback_feedback(stats: WorkoutStats) -> Feedback:
    if stats.total_sets == 0:
        return Feedback(
            feedback_text="No sets were logged this time. Showing up still counts, log a few sets next session.",
            score=50,
            source="fallback",
        )
    score = 60 + min(stats.total_sets, 20) + min(int(stats.total_volume // 1000), 10)
    if stats.duration_minutes >= 30:
        score += 5
    text = (
        f"Solid session: {stats.total_sets} sets and {stats.total_volume:g}kg of total volume "
        f"in {stats.duration_minutes} minutes."
    )
    if stats.top_exercise:
        text += f" {stats.top_exercise} got the most work today."
    return Feedback(feedback_text=text, score=min(score, 95), source="fallback")


def _prompt(stats: WorkoutStats) -> str:
    return (
        "You are a supportive strength coach. Review this finished workout and reply with a "
        'JSON object {"feedback": string (two sentences max), "score": integer 0-100}.\n'
        f"{json.dumps(asdict(stats))}"
    )


class FeedbackGenerator:
    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-2.0-flash",
        timeout: float = 15.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _ask(self, stats: WorkoutStats) -> Feedback:
        payload = {
            "contents": [{"parts": [{"text": _prompt(stats)}]}],
            "generationConfig": {"responseMimeType": "application/json"},
        }
        with httpx.Client(base_url=GEMINI_BASE_URL, timeout=self.timeout, transport=self._transport) as client:
            response = client.post(
                f"/models/{self.model}:generateContent",
                params={"key": self.api_key},
                json=payload,
            )
            response.raise_for_status()
            data = response.json()

        text = data["candidates"][0]["content"]["parts"][0]["text"]
        parsed = json.loads(text)
        feedback = str(parsed["feedback"]).strip()
        if not feedback:
            raise ValueError("empty feedback")
        score = max(0, min(100, int(parsed["score"])))
        return Feedback(feedback_text=feedback, score=score, source="ai")

    def generate(self, stats: WorkoutStats) -> Feedback:
        if not self.enabled:
            return fallback_feedback(stats)
        try:
            return self._ask(stats)
        except httpx.HTTPError as e:
            log.warning("feedback request failed, using fallback: %s", e)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            log.warning("feedback response unusable, using fallback: %s", e)
        return fallback_feedback(stats)


def summarize(session, sets, generator: FeedbackGenerator, feedback_repo):
    """Stats plus stored feedback, generating and storing it on first request."""
    stats = compute_stats(sets, as_utc(session.started_at), as_utc(session.ended_at))
    stored = feedback_repo.get_for_session(session.id)
    if stored is None:
        fb = generator.generate(stats)
        stored = feedback_repo.create(session.id, feedback_text=fb.feedback_text, score=fb.score, source=fb.source)
    return stats, stored
