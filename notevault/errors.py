"""
Exception hierarchy for the NoteVault backend.

Services raise these internally; every public service method converts them
into a failed result, so none of them crosses the service boundary.
"""

from enum import Enum


class ErrorCode(Enum):
    """Machine-readable error identification."""
    ACCESS_DENIED = "access_denied"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    CONFLICT = "conflict"
    INVALID_INPUT = "invalid_input"


class NoteVaultError(Exception):
    """Base exception for all NoteVault errors."""

    code: ErrorCode = ErrorCode.INVALID_INPUT

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class AccessDenied(NoteVaultError):
    """A path resolves outside the notes root."""
    code = ErrorCode.ACCESS_DENIED

    def __init__(self, message: str = "Access denied: path outside root directory"):
        super().__init__(message)


class NotFound(NoteVaultError):
    code = ErrorCode.NOT_FOUND


class AlreadyExists(NoteVaultError):
    code = ErrorCode.ALREADY_EXISTS


class Conflict(NoteVaultError):
    """Structurally impossible request, e.g. moving a folder into itself."""
    code = ErrorCode.CONFLICT


class InvalidInput(NoteVaultError):
    code = ErrorCode.INVALID_INPUT
