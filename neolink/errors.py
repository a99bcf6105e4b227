"""Errors raised by the account data-access layer."""
from typing import Optional


class AccountError(Exception):
    """Base class for account repository errors."""


class DuplicateUsernameError(AccountError):
    def __init__(self, username: str) -> None:
        super().__init__("Username already exists")
        self.username = username


class DuplicateNodeIdError(AccountError):
    def __init__(self, node_id: str) -> None:
        super().__init__("Node ID already in use")
        self.node_id = node_id


class StorageError(AccountError):
    """A statement failed in the database (connection, syntax, constraint...)."""


class ConstraintViolationError(StorageError):
    """A unique constraint rejected the statement. constraint is the violated constraint name, if known."""

    def __init__(self, message: str, constraint: Optional[str] = None) -> None:
        super().__init__(message)
        self.constraint = constraint
