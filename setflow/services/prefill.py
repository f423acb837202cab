"""
Set-log form prefill.

The draft is what the user is about to log. Changing the exercise name looks up
the last set of that exercise in the session (by insertion order, not by set
number) and proposes the next set number. Weight, reps and RPE are sticky:
they keep whatever the previous submission used.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Optional, Protocol, Sequence


class LoggedSet(Protocol):
    exercise_name: str
    set_number: int


@dataclass(slots=True)
class SetDraft:
    exercise_name: str = ""
    set_number: int = 1
    weight: float = 0
    reps: int = 0
    rpe: Optional[float] = 8
    duration: int = 0
    # set once the user types a set number; a plain refresh then leaves it alone
    set_number_edited: bool = False

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "SetDraft":
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def next_set_number(sets: Sequence[LoggedSet], exercise_name: str) -> int:
    matching = [s for s in sets if s.exercise_name == exercise_name]
    if not matching:
        return 1
    return matching[-1].set_number + 1


def change_exercise(draft: SetDraft, exercise_name: str, sets: Sequence[LoggedSet]) -> SetDraft:
    """Exercise name changed: always recompute the set number and drop the manual flag."""
    if not exercise_name:
        return replace(draft, exercise_name=exercise_name)
    return replace(
        draft,
        exercise_name=exercise_name,
        set_number=next_set_number(sets, exercise_name),
        set_number_edited=False,
    )


def edit_set_number(draft: SetDraft, set_number: int) -> SetDraft:
    return replace(draft, set_number=set_number, set_number_edited=True)


def refresh(draft: SetDraft, sets: Sequence[LoggedSet]) -> SetDraft:
    """Recompute against a new set list unless the user pinned the number."""
    if draft.set_number_edited or not draft.exercise_name:
        return draft
    return replace(draft, set_number=next_set_number(sets, draft.exercise_name))


def after_submit(draft: SetDraft, logged: LoggedSet) -> SetDraft:
    """Form for the next set: same exercise and loads, next number, no duration."""
    return replace(
        draft,
        exercise_name=logged.exercise_name,
        set_number=logged.set_number + 1,
        duration=0,
        set_number_edited=False,
    )
