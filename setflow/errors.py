"""
Domain errors for the workout flow.

Routers map these onto HTTP responses (see ``setflow.routers.errors``);
nothing here knows about FastAPI.
"""


class WorkoutError(Exception):
    """Base for every error the workout flow raises on purpose."""


class SetValidationError(WorkoutError):
    """Set fields failed validation. Carries a per-field message map."""

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))


class SessionNotFound(WorkoutError):
    pass


class SetNotFound(WorkoutError):
    pass


class NotOwner(WorkoutError):
    pass


class SessionClosed(WorkoutError):
    """Write attempted on a session that is already completed."""


class PhaseError(WorkoutError):
    """Event not allowed in the controller's current phase."""


class SubmissionPending(PhaseError):
    """A set is already being persisted for this controller."""


class StoreUnavailable(WorkoutError):
    """Transient persistence failure. Safe for the user to retry."""
