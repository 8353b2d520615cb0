"""
Application error taxonomy.

Every error raised by the service layer derives from :class:`GemBreakError`
and carries the HTTP status the API layer answers with. The FastAPI app
registers a single handler for the base class (see ``gembreak.main``).
"""


class GemBreakError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class BadRequest(GemBreakError):
    """A required field is missing or malformed. Raised before any mutation."""

    status_code = 400


class Unauthorized(GemBreakError):
    """Missing, invalid or expired bearer token."""

    status_code = 401


class Forbidden(GemBreakError):
    """Authenticated, but not the owner of the resource."""

    status_code = 403


class NotFound(GemBreakError):
    status_code = 404


class Conflict(GemBreakError):
    """An invariant would be violated (e.g. unmarking the only primary prompt)."""

    status_code = 409


class UpstreamBlocked(GemBreakError):
    """The model provider refused to answer. Client-error class, not a 5xx."""

    status_code = 400

    def __init__(self, reason: str):
        super().__init__(f"Response blocked due to: {reason}")
        self.reason = reason


class InternalError(GemBreakError):
    status_code = 500


class ToolLoopExceeded(InternalError):
    """The model kept requesting tools past the configured round-trip limit."""

    def __init__(self, rounds: int):
        super().__init__(f"Tool loop exceeded after {rounds} round trips")
        self.rounds = rounds
