"""
Pytest fixtures: settings, mocked Database, repository under test, in-memory repository.
"""
import os
import uuid
from datetime import datetime, timezone
from typing import List, Mapping, Optional, Union
from unittest.mock import MagicMock

# Cheap bcrypt for tests; must be set before neolink.auth builds its CryptContext
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest

from neolink.auth import hash_password, verify_password
from neolink.core.settings import Settings, reset_settings
from neolink.db import Database
from neolink.errors import DuplicateNodeIdError, DuplicateUsernameError
from neolink.models import REDACTED, User, UserStats, UserUpdate
from neolink.repositories import PostgresUserRepository, UserRepository


class InMemoryUserRepository(UserRepository):
    """In-memory user store for tests."""

    def __init__(self) -> None:
        self._users: dict = {}  # id -> User

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    def _find(self, field: str, value: str) -> Optional[User]:
        for u in self._users.values():
            if getattr(u, field) == value:
                return u
        return None

    def find_by_username(self, username: str) -> Optional[User]:
        return self._find("username", username)

    def find_by_private_key(self, private_key: str) -> Optional[User]:
        return self._find("private_key", private_key)

    def find_by_node_id(self, node_id: str) -> Optional[User]:
        return self._find("node_id", node_id)

    def create(self, username, node_id, password=None, private_key=None) -> User:
        if self.find_by_username(username):
            raise DuplicateUsernameError(username)
        if self.find_by_node_id(node_id):
            raise DuplicateNodeIdError(node_id)
        user = User(
            id=str(uuid.uuid4()),
            username=username,
            password_hash=hash_password(password) if password else None,
            private_key=private_key,
            node_id=node_id,
            created_at=datetime.now(timezone.utc),
        )
        self._users[user.id] = user
        return user

    def update_last_login(self, user_id: str) -> None:
        if user_id in self._users:
            self._users[user_id] = self._users[user_id].model_copy(
                update={"last_login": datetime.now(timezone.utc)}
            )

    def _redacted(self, u: User) -> User:
        return u.model_copy(
            update={
                "password_hash": REDACTED if u.password_hash else None,
                "private_key": REDACTED if u.private_key else None,
            }
        )

    def get_all(self) -> List[User]:
        users = sorted(self._users.values(), key=lambda u: u.created_at, reverse=True)
        return [self._redacted(u) for u in users]

    def verify_credentials(self, username: str, password: str) -> Optional[User]:
        u = self.find_by_username(username)
        if u and u.password_hash and verify_password(password, u.password_hash):
            return u
        return None

    def authenticate(self, username: str, password: str) -> Optional[User]:
        u = self.verify_credentials(username, password)
        if u is None:
            return None
        self.update_last_login(u.id)
        return self._users[u.id]

    def authenticate_with_key(self, private_key: str) -> Optional[User]:
        u = self.find_by_private_key(private_key)
        if u is None:
            return None
        self.update_last_login(u.id)
        return self._users[u.id]

    def update(self, user_id: str, changes: Union[UserUpdate, Mapping]) -> Optional[User]:
        if not isinstance(changes, UserUpdate):
            changes = UserUpdate(**changes)
        fields = dict(changes.changes())
        if not fields or user_id not in self._users:
            return None
        self._users[user_id] = self._users[user_id].model_copy(update=fields)
        return self._users[user_id]

    def delete(self, user_id: str) -> bool:
        return self._users.pop(user_id, None) is not None

    def search(self, query: str, limit: int = 10) -> List[User]:
        q = query.lower()
        hits = [u for u in self._users.values() if q in u.username.lower() or q in u.node_id.lower()]
        hits.sort(key=lambda u: u.username)
        return [self._redacted(u) for u in hits[:limit]]

    def get_stats(self) -> UserStats:
        return UserStats(total_users=len(self._users))


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Each test sees settings built from its own environment."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def mock_db():
    """Database double: set execute.return_value / side_effect per test."""
    db = MagicMock(spec=Database)
    db.execute.return_value = []
    return db


@pytest.fixture
def repo(mock_db):
    return PostgresUserRepository(mock_db)


@pytest.fixture
def memory_repo():
    return InMemoryUserRepository()


@pytest.fixture
def make_row():
    """Factory for users rows as returned by RealDictCursor."""

    def _make(**overrides) -> dict:
        row = {
            "id": str(uuid.uuid4()),
            "username": "NetRunner_42",
            "password_hash": None,
            "private_key": None,
            "node_id": "node-42abc1",
            "created_at": datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
            "last_login": None,
        }
        row.update(overrides)
        return row

    return _make
