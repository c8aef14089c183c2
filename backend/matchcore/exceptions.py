from pydantic import BaseModel
from typing import Optional


class ProblemDetail(BaseModel):
    """RFC 7807 compliant error response."""

    type: str = "about:blank"
    title: str
    detail: Optional[str] = None
    status: int
    instance: Optional[str] = None
    code: str


class EngineError(Exception):
    """Base class for scoring and bracket engine errors.

    Every rejected event surfaces as one of the subclasses below; the host
    maps them onto problem responses without inspecting messages.
    """

    status_code = 400
    title = "Engine error"
    code = "engine_error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.title)
        self.detail = detail


class InvalidState(EngineError):
    """The event is not valid for the current match or tournament state."""

    status_code = 409
    title = "Invalid state"
    code = "invalid_state"


class InvalidInput(EngineError):
    """The event or argument is malformed (e.g. a winner outside 1/2)."""

    status_code = 400
    title = "Invalid input"
    code = "invalid_input"


class NotFound(EngineError):
    status_code = 404
    title = "Not found"
    code = "not_found"

    def __init__(self, resource: str) -> None:
        super().__init__(f"{resource} not found")
        self.resource = resource


def problem_for(exc: EngineError) -> ProblemDetail:
    return ProblemDetail(
        title=exc.title,
        detail=exc.detail,
        status=exc.status_code,
        code=exc.code,
    )
