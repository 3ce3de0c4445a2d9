"""
Session endpoints mapping the facade operations onto HTTP.

- POST /v1/session/start   body: SessionMeta (optional)
- POST /v1/session/sample  body: TelemetrySample (optional)
- POST /v1/session/end
- GET  /v1/warnings

The response body is always the structured result of the operation. The
status code tells the caller how to react: 200 for success and for a
rejected sample (the transfer should continue), 409 for a call in the wrong
session state, 422 for a missing or malformed body, 503 when the session
logs failed and 500 for unexpected faults.

Handlers are plain ``def`` functions and run in the server threadpool; the
session engine serialises them.

CHANGELOG:
- 2026-10-19: Structured results for malformed bodies (STORY-014)
- 2026-10-13: Initial creation (STORY-007)

TODO:
- None
"""

from collections.abc import Sequence
from typing import Annotated, Any

from fastapi import APIRouter, Body, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from pv_server.src.api.deps import Service
from pv_server.src.models import (
    EndResult,
    ErrorKind,
    OperationResult,
    PushResult,
    SessionMeta,
    StartResult,
    TelemetrySample,
)

router = APIRouter(prefix="/v1", tags=["session"])

_STATUS_BY_ERROR: dict[ErrorKind | None, int] = {
    None: 200,
    ErrorKind.VALIDATION_FAILURE: 200,
    ErrorKind.INVALID_INPUT: 422,
    ErrorKind.PROTOCOL_VIOLATION: 409,
    ErrorKind.STORAGE_FAILURE: 503,
    ErrorKind.INTERNAL_ERROR: 500,
}


def _respond(result: OperationResult) -> JSONResponse:
    """Serialise *result* with the status code matching its error kind."""
    return JSONResponse(
        status_code=_STATUS_BY_ERROR[result.error],
        content=result.model_dump(mode="json"),
    )


def _describe_errors(errors: Sequence[Any]) -> str:
    parts = []
    for error in errors:
        loc = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        msg = error.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "Invalid request body: " + "; ".join(parts)


async def invalid_body_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Answer an unparsable session body with the endpoint's structured result.

    Other routes keep the default FastAPI validation response.
    """
    message = _describe_errors(exc.errors())
    path = request.url.path
    if path == "/v1/session/sample":
        engine = request.app.state.service.engine
        result: OperationResult = PushResult(
            success=False,
            message=message,
            error=ErrorKind.INVALID_INPUT,
            received_count=engine.received_count,
            percent_of_limit=engine.percent_of_limit,
        )
    elif path == "/v1/session/start":
        result = StartResult(success=False, message=message, error=ErrorKind.INVALID_INPUT)
    elif path == "/v1/session/end":
        result = EndResult(success=False, message=message, error=ErrorKind.INVALID_INPUT)
    else:
        return await request_validation_exception_handler(request, exc)
    return _respond(result)


@router.post("/session/start", response_model=StartResult)
def start_session(
    service: Service,
    meta: Annotated[SessionMeta | None, Body()] = None,
) -> JSONResponse:
    """Open a transfer session described by *meta*."""
    return _respond(service.start_session(meta))


@router.post("/session/sample", response_model=PushResult)
def push_sample(
    service: Service,
    sample: Annotated[TelemetrySample | None, Body()] = None,
) -> JSONResponse:
    """Validate, log and analyse one telemetry sample."""
    return _respond(service.push_sample(sample))


@router.post("/session/end", response_model=EndResult)
def end_session(service: Service) -> JSONResponse:
    """Close the active transfer session."""
    return _respond(service.end_session())


@router.get("/warnings")
def get_warnings(service: Service) -> dict[str, list[str]]:
    """Return the accumulated warnings, oldest first."""
    return {"warnings": service.get_warnings()}
