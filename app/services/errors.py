from enum import Enum


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    REFERENTIAL_INTEGRITY = "referential_integrity"
    TRANSIENT = "transient"
    ASSET_CLEANUP_FAILURE = "asset_cleanup_failure"
    INVALID = "invalid"


class EngineError(Exception):
    """Base class for failures raised by the ranking and voting engine.

    Every failure carries a kind so callers can decide whether to recover
    (conflict, transient) or surface it as is (everything else).
    """
    kind: ErrorKind = ErrorKind.TRANSIENT
    status_code: int = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class UnauthenticatedError(EngineError):
    kind = ErrorKind.UNAUTHENTICATED
    status_code = 401


class UnauthorizedError(EngineError):
    kind = ErrorKind.UNAUTHORIZED
    status_code = 403


class NotFoundError(EngineError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404


class ConflictError(EngineError):
    kind = ErrorKind.CONFLICT
    status_code = 409


class ReferentialIntegrityError(EngineError):
    kind = ErrorKind.REFERENTIAL_INTEGRITY
    status_code = 409


class TransientError(EngineError):
    kind = ErrorKind.TRANSIENT
    status_code = 503


class AssetCleanupError(EngineError):
    # Never fails the record mutation it belongs to
    kind = ErrorKind.ASSET_CLEANUP_FAILURE
    status_code = 500


class InvalidInputError(EngineError):
    kind = ErrorKind.INVALID
    status_code = 400


# Failures the reconciliation controller absorbs by re-fetching
RECOVERABLE_KINDS = (ErrorKind.CONFLICT, ErrorKind.TRANSIENT)


def require_viewer(viewer: str | None) -> str:
    if not viewer:
        raise UnauthenticatedError("Authentication required")
    return viewer
