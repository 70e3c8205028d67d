"""Custom exception classes for the security admin API."""

from typing import Iterable, List, Optional


class SecAdminError(Exception):
    """Base exception for the security admin API.

    ``details`` carries the offending ids (blocking parents, inherited items,
    unknown references) so callers can render them without parsing the message.
    """

    status_code = 400

    def __init__(self, message: str = "An error occurred", details: Optional[Iterable[int]] = None):
        self.message = message
        self.details: List[int] = sorted(details) if details else []
        super().__init__(self.message)


class ValidationError(SecAdminError):
    """Raised when input or an inheritance rule is violated."""
    status_code = 400


class ResourceNotFoundError(SecAdminError):
    """Raised when a requested resource is not found."""
    status_code = 404


class ResourceConflictError(SecAdminError):
    """Raised when a unique code or name already exists."""
    status_code = 409


class TransactionError(SecAdminError):
    """Raised when the database fails mid-transaction. Nothing was written."""
    status_code = 500


def format_ids(ids: Iterable[int]) -> str:
    return ", ".join(str(i) for i in sorted(ids))
