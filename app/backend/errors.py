from __future__ import annotations

from .constants import MAX_ERROR_CHARS


def truncate(text: str, max_chars: int = MAX_ERROR_CHARS) -> str:
    value = (text or "").strip()
    if len(value) <= max_chars:
        return value
    return value[: max_chars - 3] + "..."


class CoachError(RuntimeError):
    pass


class ValidationError(CoachError, ValueError):
    """Bad or missing input. The message is German and shown to the user."""


class ConfigurationMissing(CoachError):
    pass


class ModelUnavailable(CoachError):
    pass


class MalformedModelOutput(CoachError):
    pass


class PersistenceDegraded(CoachError):
    pass


class TurnConflictError(PersistenceDegraded):
    pass


class AccessDenied(CoachError):
    pass
