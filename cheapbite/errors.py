"""
Error taxonomy and the write-failure observer.

Service functions raise the exceptions below; the JSON error handlers in
create_app() turn them into responses.  A failed store write never takes
the process down: the transaction is rolled back, the failure is published
on the ``write_failed`` signal and kept in a small in-app buffer for the
diagnostics endpoint, and the caller gets a StoreWriteError to revert any
optimistic state it applied.  Nothing here retries.
"""
import logging
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone

from blinker import Namespace
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from cheapbite.extensions import db

log = logging.getLogger(__name__)

_signals     = Namespace()
write_failed = _signals.signal("write-failed")


class CheapBiteError(Exception):
    status_code = 500
    kind        = "error"

    def __init__(self, message: str = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class ValidationError(CheapBiteError):
    """Malformed input, rejected before any store or remote call."""
    status_code = 400
    kind        = "validation"

    def __init__(self, message: str = "Invalid input", fields: dict = None):
        super().__init__(message)
        self.fields = fields or {}

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["fields"] = self.fields
        return data


class PermissionDenied(CheapBiteError):
    status_code = 403
    kind        = "forbidden"


class NotFound(CheapBiteError):
    status_code = 404
    kind        = "not_found"


class StoreWriteError(CheapBiteError):
    """A transaction was rejected by the store. Carries what was attempted."""
    status_code = 409
    kind        = "write_failed"

    def __init__(self, path: str, operation: str, payload=None, message: str = None):
        super().__init__(message or f"Could not {operation} {path}")
        self.path      = path
        self.operation = operation
        self.payload   = payload

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({"path": self.path, "operation": self.operation})
        return data


class ExternalServiceError(CheapBiteError):
    """Content-generation or media store failure. The user may try again."""
    status_code = 502
    kind        = "external_service"

    def __init__(self, message: str, status_code: int = None, retryable: bool = True):
        super().__init__(message)
        self.upstream_status = status_code
        self.retryable       = retryable

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["retryable"] = self.retryable
        return data


# ── Write-failure observer ────────────────────────────────────────────────────

@dataclass
class WriteFailure:
    path:      str
    operation: str
    payload:   object
    reason:    str
    at:        datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "path":      self.path,
            "operation": self.operation,
            "payload":   _jsonable(self.payload),
            "reason":    self.reason,
            "at":        self.at.isoformat(),
        }


def _jsonable(value):
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def _failure_buffer() -> deque:
    buf = current_app.extensions.get("cheapbite.write_failures")
    if buf is None:
        buf = deque(maxlen=current_app.config.get("WRITE_FAILURE_BUFFER", 100))
        current_app.extensions["cheapbite.write_failures"] = buf
    return buf


def report_write_failure(path: str, operation: str, payload=None, exc: Exception = None) -> WriteFailure:
    failure = WriteFailure(
        path=path,
        operation=operation,
        payload=payload,
        reason=str(exc) if exc is not None else "unknown",
    )
    log.warning("Store write failed: %s %s (%s)", operation, path, failure.reason)
    _failure_buffer().append(failure)
    write_failed.send(current_app._get_current_object(), failure=failure)
    return failure


def recent_write_failures() -> list[WriteFailure]:
    return list(_failure_buffer())


@contextmanager
def store_transaction(path: str, operation: str, payload=None):
    """Run the body as one all-or-nothing commit.

    Domain errors raised inside the block roll back and propagate unchanged;
    database errors are reported to the observer and re-raised as
    StoreWriteError.
    """
    try:
        yield db.session
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        report_write_failure(path, operation, payload, exc)
        raise StoreWriteError(path, operation, payload) from exc
    except Exception:
        db.session.rollback()
        raise
