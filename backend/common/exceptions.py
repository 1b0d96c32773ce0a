"""Application exceptions and their RFC 7807 ``application/problem+json`` rendering.

Services raise these; routers never catch them. Pure domain modules raise
``ValueError`` subclasses, which services translate into
``ValidationException`` before they reach the HTTP layer.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

logger = logging.getLogger(__name__)

BASE_ERROR_URI = "https://attendance.local/errors"
PROBLEM_JSON = "application/problem+json"

# Request parts FastAPI prefixes onto pydantic error locations.
_REQUEST_PARTS = frozenset({"body", "query", "path", "header", "cookie"})


# ═════════════════════════════════════════════════════════════════════
# Exception hierarchy
# ═════════════════════════════════════════════════════════════════════


class AppException(Exception):
    """Base for all application errors; subclasses fix status, type and title."""

    status_code: int = 500
    error_type: str = "internal-error"
    title: str = "Internal Error"

    def __init__(
        self,
        detail: str,
        *,
        errors: Optional[dict[str, list[str]]] = None,
        title: Optional[str] = None,
    ) -> None:
        self.detail = detail
        self.errors = errors
        if title is not None:
            self.title = title
        super().__init__(detail)

    def to_problem(self, instance: str) -> dict[str, Any]:
        body: dict[str, Any] = {
            "type": f"{BASE_ERROR_URI}/{self.error_type}",
            "title": self.title,
            "status": self.status_code,
            "detail": self.detail,
            "instance": instance,
        }
        if self.errors:
            body["errors"] = self.errors
        return body


class NotFoundException(AppException):
    """404: employee, schedule, workday, incident ... does not exist."""

    status_code = 404
    error_type = "not-found"

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            f"{entity_type} with id '{entity_id}' does not exist.",
            title=f"{entity_type} Not Found",
        )


class ConflictError(AppException):
    """409: a unique value (email, name, employee+date) is already taken."""

    status_code = 409
    error_type = "conflict"
    title = "Conflict"

    def __init__(self, field: str, value: Any) -> None:
        super().__init__(
            f"An entry with {field}='{value}' already exists.",
            errors={field: [f"'{value}' is already in use."]},
        )


class ConfirmationRequiredException(AppException):
    """409: the change discards clocked data and needs ``force=true``."""

    status_code = 409
    error_type = "confirmation-required"

    def __init__(self, entity_type: str, detail: str) -> None:
        super().__init__(
            detail,
            errors={"force": ["Resend with force=true to confirm."]},
            title=f"{entity_type} Confirmation Required",
        )


class ValidationException(AppException):
    """422: business-rule failures, keyed by field like request validation."""

    status_code = 422
    error_type = "validation-error"
    title = "Validation Error"

    def __init__(self, errors: dict[str, list[str]]) -> None:
        super().__init__("One or more fields failed validation.", errors=errors)


# ═════════════════════════════════════════════════════════════════════
# Request validation → field errors
# ═════════════════════════════════════════════════════════════════════


def _split_rule_message(message: str) -> list[tuple[str, str]]:
    """``"end_time: x; start_break: y"`` → ``[("end_time", "x"), ("start_break", "y")]``.

    Model validators report schedule and workday rules in that joined form;
    any other message comes back as a single unnamed entry.
    """
    pairs = []
    for chunk in message.split("; "):
        field, sep, text = chunk.partition(": ")
        if not sep or not field.isidentifier():
            return [("", message)]
        pairs.append((field, text))
    return pairs


def field_errors(errors: Iterable[dict[str, Any]]) -> dict[str, list[str]]:
    """Group pydantic errors by dotted field path, without the request part."""
    grouped: dict[str, list[str]] = {}
    for err in errors:
        loc = [str(p) for p in err.get("loc", ())]
        if loc and loc[0] in _REQUEST_PARTS:
            loc = loc[1:]
        prefix = ".".join(loc)
        message = err.get("msg", "Invalid value")

        if err.get("type") == "value_error":
            pairs = _split_rule_message(message.removeprefix("Value error, "))
        else:
            pairs = [("", message)]

        for field, text in pairs:
            name = ".".join(p for p in (prefix, field) if p) or "body"
            grouped.setdefault(name, []).append(text)
    return grouped


# ═════════════════════════════════════════════════════════════════════
# FastAPI handlers
# ═════════════════════════════════════════════════════════════════════


def _problem_response(status_code: int, body: dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body, media_type=PROBLEM_JSON)


async def _handle_app_exception(request: Request, exc: AppException) -> JSONResponse:
    return _problem_response(exc.status_code, exc.to_problem(request.url.path))


async def _handle_request_validation(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    body = ValidationException(field_errors(exc.errors())).to_problem(request.url.path)
    body["detail"] = "Request validation failed."
    return _problem_response(422, body)


async def _handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
    """A unique constraint lost a race that the service-level check missed."""
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return _problem_response(409, {
        "type": f"{BASE_ERROR_URI}/{ConflictError.error_type}",
        "title": ConflictError.title,
        "status": 409,
        "detail": "The change conflicts with existing data.",
        "instance": request.url.path,
    })


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the problem+json handlers to the app (called from ``create_app``)."""
    app.add_exception_handler(AppException, _handle_app_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_request_validation)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _handle_integrity_error)  # type: ignore[arg-type]
