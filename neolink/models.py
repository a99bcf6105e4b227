"""
Pydantic data models for user records, partial updates and aggregate stats.
"""
from datetime import datetime
from typing import Any, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

REDACTED = "[REDACTED]"

# Column order for UPDATE ... SET; UserUpdate.changes() follows it
UPDATABLE_COLUMNS = ("username", "password_hash", "private_key", "node_id")


class User(BaseModel):
    """One account row. password_hash / private_key are None for accounts that do not use them."""

    model_config = ConfigDict(frozen=True)

    id: str
    username: str
    password_hash: Optional[str] = None
    private_key: Optional[str] = None
    node_id: str
    created_at: datetime
    last_login: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any], redact: bool = False) -> "User":
        """Map a users row. With redact=True, present secrets are replaced by REDACTED."""
        password_hash = row.get("password_hash")
        private_key = row.get("private_key")
        if redact:
            password_hash = REDACTED if password_hash else None
            private_key = REDACTED if private_key else None
        return cls(
            id=str(row["id"]),
            username=row["username"],
            password_hash=password_hash,
            private_key=private_key,
            node_id=row["node_id"],
            created_at=row["created_at"],
            last_login=row.get("last_login"),
        )

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    @property
    def has_private_key(self) -> bool:
        return bool(self.private_key)


class UserUpdate(BaseModel):
    """Fields to change on an existing user. None means "leave as is"."""

    model_config = ConfigDict(extra="forbid")

    username: Optional[str] = Field(None, min_length=1, max_length=255)
    password_hash: Optional[str] = Field(None, min_length=1)
    private_key: Optional[str] = Field(None, min_length=1)
    node_id: Optional[str] = Field(None, min_length=1, max_length=255)

    def changes(self) -> List[Tuple[str, str]]:
        """Supplied fields as (column, value) pairs in UPDATABLE_COLUMNS order."""
        return [(col, getattr(self, col)) for col in UPDATABLE_COLUMNS if getattr(self, col) is not None]

    def is_empty(self) -> bool:
        return not self.changes()


class UserStats(BaseModel):
    total_users: int = 0
    active_users_last_24h: int = 0
    new_users_last_7d: int = 0
