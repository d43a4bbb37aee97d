"""Error taxonomy shared by the API layer and the generator pipeline."""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

log = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """Request rejected before any side effect. Lists every violation found."""
    status_code = 400

    def __init__(self, violations: Iterable[str] | str):
        if isinstance(violations, str):
            violations = [violations]
        self.violations = list(violations)
        super().__init__("; ".join(self.violations))


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 400


class UnauthorizedError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class CommandError(Exception):
    """An external command exited with a non-zero status."""

    def __init__(self, command: str, returncode: int, stdout: str = "", stderr: str = ""):
        super().__init__(f"Command '{command}' failed with exit code {returncode}")
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class GenerationError(AppError):
    status_code = 500

    @classmethod
    def from_exception(cls, prefix: str, exc: Exception) -> "GenerationError":
        message = f"{prefix}: {exc}"
        stderr = getattr(exc, "stderr", "") or ""
        stdout = getattr(exc, "stdout", "") or ""
        if stderr.strip():
            message += f"\nCommand error: {stderr}"
        if stdout.strip():
            message += f"\nOutput: {stdout}"
        return cls(message)


class BootstrapPatchError(GenerationError):
    pass


class SyncError(Exception):
    """Schema push or client regeneration failed after the response went out."""


def _error_body(message: str) -> dict:
    return {"success": False, "message": message, "error": message}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("Request failed: %s %s - %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    violations = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        violations.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return JSONResponse(status_code=400, content=_error_body("; ".join(violations)))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
