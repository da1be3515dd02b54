"""Exception taxonomy for the stake authority workflow."""

from __future__ import annotations

from typing import List, Optional


class StakeAuthorityError(RuntimeError):
    """Base class for every recoverable failure raised by this package."""


class ConfigurationError(StakeAuthorityError):
    """Raised when configuration is invalid."""


class NetworkError(StakeAuthorityError):
    """Raised on transport failure or a malformed RPC response."""


class ValidationRejected(StakeAuthorityError):
    """Raised when a proposed authority change is not admissible."""


class SignerDeclined(StakeAuthorityError):
    """Raised when the signer refuses to sign or is unavailable."""


class SubmissionRejected(StakeAuthorityError):
    """Raised when the network rejects a transaction."""

    def __init__(self, message: str, logs: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.logs: List[str] = list(logs or [])


class ConfirmationTimeout(StakeAuthorityError):
    """Raised when confirmation does not arrive before the deadline."""

    def __init__(self, transaction_id: str, timeout: float) -> None:
        super().__init__(f"Confirmation of {transaction_id} timed out after {timeout:.1f}s")
        self.transaction_id = transaction_id
        self.timeout = timeout
