"""Repository protocols (interfaces) for testability and clear boundaries."""
from typing import List, Mapping, Optional, Protocol, Union

from neolink.models import User, UserStats, UserUpdate


class UserRepository(Protocol):
    """User persistence: lookups, create/update/delete, search, credential checks, stats."""

    def get_by_id(self, user_id: str) -> Optional[User]:
        ...

    def find_by_username(self, username: str) -> Optional[User]:
        ...

    def find_by_private_key(self, private_key: str) -> Optional[User]:
        ...

    def find_by_node_id(self, node_id: str) -> Optional[User]:
        ...

    def create(
        self,
        username: str,
        node_id: str,
        password: Optional[str] = None,
        private_key: Optional[str] = None,
    ) -> User:
        """Insert user; return it. Raises DuplicateUsernameError / DuplicateNodeIdError."""
        ...

    def update_last_login(self, user_id: str) -> None:
        ...

    def get_all(self) -> List[User]:
        """All users, newest first, secrets redacted."""
        ...

    def verify_credentials(self, username: str, password: str) -> Optional[User]:
        ...

    def authenticate(self, username: str, password: str) -> Optional[User]:
        ...

    def authenticate_with_key(self, private_key: str) -> Optional[User]:
        ...

    def update(self, user_id: str, changes: Union[UserUpdate, Mapping[str, Optional[str]]]) -> Optional[User]:
        """Apply supplied fields only. Returns None if nothing to change or user not found."""
        ...

    def delete(self, user_id: str) -> bool:
        ...

    def search(self, query: str, limit: int = 10) -> List[User]:
        """Case-insensitive substring match on username or node id, username ascending, secrets redacted."""
        ...

    def get_stats(self) -> UserStats:
        ...
