"""versionfs error types."""


class VersionFSError(Exception):
    """Base class for all versionfs errors."""


class NotFoundError(VersionFSError, LookupError):
    """Raised when a blob, commit, branch or tree path does not exist."""


class StoreUnavailable(VersionFSError):
    """Raised when the blob store cannot be reached or answers non-2xx."""


class IndexingTimeout(VersionFSError):
    """Raised when a transaction's effects stay invisible after polling.

    The transaction may still land; the ledger has not indexed it yet.
    Distinct from ``TransactionRejected``.

    Attributes:
        digest: The transaction handle that was being polled.
        attempts: How many polls were made.
    """

    def __init__(self, digest: str, attempts: int) -> None:
        self.digest = digest
        self.attempts = attempts
        super().__init__(
            f"Effects of {digest} not indexed after {attempts} attempts"
        )


class TransactionRejected(VersionFSError):
    """Raised when the ledger refuses an operation. Never retried.

    Attributes:
        digest: The transaction handle, when one was issued.
        reason: The ledger's error message.
    """

    def __init__(self, reason: str, digest: str | None = None) -> None:
        self.reason = reason
        self.digest = digest
        where = f" ({digest})" if digest else ""
        super().__init__(f"Transaction rejected{where}: {reason}")


class DecodeError(VersionFSError, ValueError):
    """Raised on an unexpected type tag or a truncated/oversized field."""


class PermissionDenied(VersionFSError):
    """Raised when an operation needs a targeted repository and capability."""


class ValidationError(VersionFSError, ValueError):
    """Raised on invalid caller input (empty message, duplicate paths, ...)."""


class LedgerUnavailable(VersionFSError):
    """Raised when the ledger endpoint cannot be reached or answers garbage."""
