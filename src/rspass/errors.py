"""
Error taxonomy shared by every rspass component.

Each failure surfaced by the key manager, the credential store or the
ledger is exactly one of these kinds. Callers can catch ``RspassError``
and branch on ``.kind``, or catch the concrete subclass.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure kinds."""

    INITIALIZATION_ERROR = "initialization_error"
    PERMISSION_DENIED = "permission_denied"
    NOT_INITIALIZED = "not_initialized"
    BAD_CONFIG = "bad_config"
    INSERTION_ERROR = "insertion_error"
    ALREADY_EXISTS = "already_exists"
    ENCRYPTION_ERROR = "encryption_error"
    DECRYPTION_ERROR = "decryption_error"
    NOT_FOUND = "not_found"
    REMOTE_ERROR = "remote_error"
    FETCH_ERROR = "fetch_error"
    PUSH_ERROR = "push_error"
    CONFIG_ALREADY_SET = "config_already_set"
    INTERNAL_ERROR = "internal_error"


class RspassError(Exception):
    """Base class for every error rspass raises.

    Attributes:
        kind: The taxonomy entry this error belongs to.
        message: Human-readable description.
    """

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class InitializationError(RspassError):
    """The repository could not be created."""

    kind = ErrorKind.INITIALIZATION_ERROR


class PermissionDenied(RspassError):
    """The filesystem refused an operation for lack of rights."""

    kind = ErrorKind.PERMISSION_DENIED


class NotInitialized(RspassError):
    """Keys or repository are missing."""

    kind = ErrorKind.NOT_INITIALIZED


class BadConfig(RspassError):
    """Persisted configuration or key material is unreadable."""

    kind = ErrorKind.BAD_CONFIG


class InsertionError(RspassError):
    """A path could not be staged, or a credential name is invalid."""

    kind = ErrorKind.INSERTION_ERROR


class AlreadyExists(RspassError):
    kind = ErrorKind.ALREADY_EXISTS


class EncryptionError(RspassError):
    kind = ErrorKind.ENCRYPTION_ERROR


class DecryptionError(RspassError):
    """Wrong passphrase, tampered ciphertext, or padding mismatch."""

    kind = ErrorKind.DECRYPTION_ERROR


class NotFound(RspassError):
    kind = ErrorKind.NOT_FOUND


class RemoteError(RspassError):
    """The ``origin`` remote is missing or could not be registered."""

    kind = ErrorKind.REMOTE_ERROR


class FetchError(RspassError):
    kind = ErrorKind.FETCH_ERROR


class PushError(RspassError):
    """The remote rejected a push. Fetch first, then retry."""

    kind = ErrorKind.PUSH_ERROR


class ConfigAlreadySet(RspassError):
    kind = ErrorKind.CONFIG_ALREADY_SET


class InternalError(RspassError):
    """A state that should not happen: unexpected OS or git failure."""

    kind = ErrorKind.INTERNAL_ERROR


ERRORS_BY_KIND: dict[ErrorKind, type[RspassError]] = {
    cls.kind: cls
    for cls in (
        InitializationError,
        PermissionDenied,
        NotInitialized,
        BadConfig,
        InsertionError,
        AlreadyExists,
        EncryptionError,
        DecryptionError,
        NotFound,
        RemoteError,
        FetchError,
        PushError,
        ConfigAlreadySet,
        InternalError,
    )
}
