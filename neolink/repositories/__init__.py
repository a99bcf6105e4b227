"""Repository layer: data access abstractions and implementations."""

from neolink.repositories.protocols import UserRepository
from neolink.repositories.user_repository import PostgresUserRepository

__all__ = [
    "UserRepository",
    "PostgresUserRepository",
]
