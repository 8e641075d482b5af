import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mcserver_engine.core.errors import (
    PartialFailureError,
    PlatformError,
    ServerAlreadyExists,
    ServerEngineError,
    ServerNotFoundError,
    ServerPermissionError,
    ServerStateConflictError,
    ServerValidationError,
    WaitTimeoutError,
)

logger = logging.getLogger(__name__)

# Most specific first
STATUS_CODES = [
    (ServerValidationError, 400),
    (ServerPermissionError, 403),
    (ServerNotFoundError, 404),
    (ServerAlreadyExists, 409),
    (ServerStateConflictError, 409),
    (WaitTimeoutError, 504),
    (PartialFailureError, 207),
    (PlatformError, 500),
]


def status_for(error: ServerEngineError) -> int:
    for error_type, code in STATUS_CODES:
        if isinstance(error, error_type):
            return code
    return 500


def error_body(error: ServerEngineError) -> dict:
    body = {"message": str(error), "error": type(error).__name__}
    if isinstance(error, ServerNotFoundError):
        body["resource"] = error.resource
    if isinstance(error, ServerStateConflictError) and error.current_state:
        body["current_state"] = error.current_state
    if isinstance(error, PlatformError):
        body["backend"] = error.backend
    if isinstance(error, WaitTimeoutError):
        body["waiting_for"] = error.waiting_for
    if isinstance(error, PartialFailureError):
        report = error.report
        body.update(
            unique_id=report.unique_id,
            success=False,
            partial=True,
            details=report.details,
            steps=[step.to_dict() for step in report.steps],
        )
    return body


async def server_engine_error_handler(request: Request, exc: ServerEngineError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error(f"[api] {request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"[api] {request.method} {request.url.path} -> {code}: {exc}")
    return JSONResponse(status_code=code, content=error_body(exc))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServerEngineError, server_engine_error_handler)
