from enum import Enum


class FailureKind(str, Enum):
    """Failure categories reported per message and per attachment."""

    AUTH_EXPIRED = "auth_expired"
    NOT_FOUND = "not_found"
    TRANSIENT_REMOTE_ERROR = "transient_remote_error"
    REMOTE_ERROR = "remote_error"
    DECODE_ERROR = "decode_error"
    FILESYSTEM_ERROR = "filesystem_error"
    PARTIAL_ATTACHMENT_FAILURE = "partial_attachment_failure"


class MailArchiverError(Exception):
    """Base class for every error raised by mail_archiver."""

    kind: FailureKind = FailureKind.REMOTE_ERROR


class RemoteError(MailArchiverError):
    """A Gmail API call failed with a non-retryable status."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class AuthExpired(RemoteError):
    """The stored credentials were rejected; the user must re-authorize."""

    kind = FailureKind.AUTH_EXPIRED


class NotFound(RemoteError):
    """The referenced message, label or attachment does not exist."""

    kind = FailureKind.NOT_FOUND


class TransientRemoteError(RemoteError):
    """Network failure, timeout, throttling or a 5xx answer."""

    kind = FailureKind.TRANSIENT_REMOTE_ERROR


class DecodeError(MailArchiverError):
    """A base64 payload could not be decoded."""

    kind = FailureKind.DECODE_ERROR


class ArchiveWriteError(MailArchiverError):
    """Creating the archive directory or one of its files failed."""

    kind = FailureKind.FILESYSTEM_ERROR


class ArchiveCollisionError(ArchiveWriteError):
    """The archive directory name is taken and the policy forbids suffixing."""
