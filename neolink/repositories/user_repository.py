"""Postgres implementation of UserRepository. Statements go through an injected neolink.db.Database."""
import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import List, Mapping, Optional, Union

from neolink.auth import hash_password, verify_password
from neolink.db import Database
from neolink.errors import (
    ConstraintViolationError,
    DuplicateNodeIdError,
    DuplicateUsernameError,
)
from neolink.models import User, UserStats, UserUpdate

logger = logging.getLogger(__name__)

STATS_QUERIES = {
    "total_users": "SELECT COUNT(*) AS count FROM users",
    "active_users_last_24h": "SELECT COUNT(*) AS count FROM users WHERE last_login > NOW() - INTERVAL '24 hours'",
    "new_users_last_7d": "SELECT COUNT(*) AS count FROM users WHERE created_at > NOW() - INTERVAL '7 days'",
}


def _normalize_id(value: str) -> Optional[str]:
    """Canonical UUID text for a user id, or None if it cannot be a user id."""
    try:
        return str(uuid.UUID(str(value)))
    except ValueError:
        return None


def _like_pattern(query: str) -> str:
    """Substring pattern for ILIKE with the query's own wildcards escaped."""
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _duplicate_error(
    e: ConstraintViolationError, username: Optional[str], node_id: Optional[str]
) -> Optional[Exception]:
    """Duplicate error matching the violated unique constraint, or None if it is some other constraint."""
    constraint = e.constraint or ""
    if "node_id" in constraint and node_id is not None:
        return DuplicateNodeIdError(node_id)
    if "username" in constraint and username is not None:
        return DuplicateUsernameError(username)
    return None


class PostgresUserRepository:
    """User persistence in Postgres."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def _find_one(self, column: str, value: str) -> Optional[User]:
        rows = self._db.execute(f"SELECT * FROM users WHERE {column} = %s", (value,))
        if not rows:
            return None
        return User.from_row(rows[0])

    def get_by_id(self, user_id: str) -> Optional[User]:
        normalized = _normalize_id(user_id)
        if normalized is None:
            return None
        try:
            return self._find_one("id", normalized)
        except Exception:
            logger.exception("Error finding user by id %s", user_id)
            raise

    def find_by_username(self, username: str) -> Optional[User]:
        try:
            return self._find_one("username", username)
        except Exception:
            logger.exception("Error finding user by username %s", username)
            raise

    def find_by_private_key(self, private_key: str) -> Optional[User]:
        try:
            return self._find_one("private_key", private_key)
        except Exception:
            # never log the key itself
            logger.exception("Error finding user by private key")
            raise

    def find_by_node_id(self, node_id: str) -> Optional[User]:
        try:
            return self._find_one("node_id", node_id)
        except Exception:
            logger.exception("Error finding user by node ID %s", node_id)
            raise

    def create(
        self,
        username: str,
        node_id: str,
        password: Optional[str] = None,
        private_key: Optional[str] = None,
    ) -> User:
        """
        Insert a user after checking username and node id are free.
        The schema's UNIQUE constraints catch a concurrent insert that slips past the checks.
        """
        try:
            if self._find_one("username", username) is not None:
                raise DuplicateUsernameError(username)
            if self._find_one("node_id", node_id) is not None:
                raise DuplicateNodeIdError(node_id)

            password_hash = hash_password(password) if password else None
            try:
                rows = self._db.execute(
                    """INSERT INTO users (username, password_hash, private_key, node_id)
                       VALUES (%s, %s, %s, %s)
                       RETURNING *""",
                    (username, password_hash, private_key or None, node_id),
                )
            except ConstraintViolationError as e:
                duplicate = _duplicate_error(e, username, node_id)
                if duplicate is None:
                    raise
                raise duplicate from e
            user = User.from_row(rows[0])
            logger.info("Created user %s (node %s)", user.username, user.node_id)
            return user
        except (DuplicateUsernameError, DuplicateNodeIdError) as e:
            logger.warning("Error creating user %s: %s", username, e)
            raise
        except Exception:
            logger.exception("Error creating user %s", username)
            raise

    def _touch_last_login(self, user_id: str) -> Optional[datetime]:
        normalized = _normalize_id(user_id)
        if normalized is None:
            return None
        rows = self._db.execute(
            "UPDATE users SET last_login = NOW() WHERE id = %s RETURNING last_login",
            (normalized,),
        )
        return rows[0]["last_login"] if rows else None

    def update_last_login(self, user_id: str) -> None:
        try:
            self._touch_last_login(user_id)
        except Exception:
            logger.exception("Error updating last login for user %s", user_id)
            raise

    def get_all(self) -> List[User]:
        try:
            rows = self._db.execute("SELECT * FROM users ORDER BY created_at DESC")
            return [User.from_row(row, redact=True) for row in rows]
        except Exception:
            logger.exception("Error getting all users")
            raise

    def verify_credentials(self, username: str, password: str) -> Optional[User]:
        """User for a matching username/password; None for unknown user, key-only account or wrong password."""
        try:
            user = self.find_by_username(username)
            if user is None or not user.password_hash:
                return None
            if not verify_password(password, user.password_hash):
                return None
            return user
        except Exception:
            logger.exception("Error verifying credentials for %s", username)
            raise

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """verify_credentials, then stamp last_login on success."""
        user = self.verify_credentials(username, password)
        if user is None:
            return None
        return self._login(user)

    def authenticate_with_key(self, private_key: str) -> Optional[User]:
        user = self.find_by_private_key(private_key)
        if user is None:
            return None
        return self._login(user)

    def _login(self, user: User) -> User:
        try:
            last_login = self._touch_last_login(user.id)
        except Exception:
            logger.exception("Error updating last login for user %s", user.id)
            raise
        if last_login is None:
            return user
        return user.model_copy(update={"last_login": last_login})

    def update(self, user_id: str, changes: Union[UserUpdate, Mapping[str, Optional[str]]]) -> Optional[User]:
        """
        Change only the supplied fields. Returns the updated user, or None when
        nothing was supplied (no statement issued) or the id matches no user.
        """
        if not isinstance(changes, UserUpdate):
            changes = UserUpdate(**changes)
        fields = changes.changes()
        normalized = _normalize_id(user_id)
        if not fields or normalized is None:
            return None

        # SET list and parameters come from the same ordered pairs
        assignments = ", ".join(f"{column} = %s" for column, _ in fields)
        params = [value for _, value in fields]
        params.append(normalized)
        try:
            try:
                rows = self._db.execute(
                    f"UPDATE users SET {assignments} WHERE id = %s RETURNING *",
                    params,
                )
            except ConstraintViolationError as e:
                duplicate = _duplicate_error(e, changes.username, changes.node_id)
                if duplicate is None:
                    raise
                raise duplicate from e
            if not rows:
                return None
            return User.from_row(rows[0])
        except Exception:
            logger.exception("Error updating user %s (%s)", user_id, ", ".join(c for c, _ in fields))
            raise

    def delete(self, user_id: str) -> bool:
        normalized = _normalize_id(user_id)
        if normalized is None:
            return False
        try:
            rows = self._db.execute("DELETE FROM users WHERE id = %s RETURNING id", (normalized,))
            return len(rows) > 0
        except Exception:
            logger.exception("Error deleting user %s", user_id)
            raise

    def search(self, query: str, limit: int = 10) -> List[User]:
        pattern = _like_pattern(query)
        try:
            rows = self._db.execute(
                """SELECT * FROM users
                   WHERE username ILIKE %s OR node_id ILIKE %s
                   ORDER BY username ASC
                   LIMIT %s""",
                (pattern, pattern, limit),
            )
            return [User.from_row(row, redact=True) for row in rows]
        except Exception:
            logger.exception("Error searching users for %r", query)
            raise

    def _count(self, statement: str) -> int:
        rows = self._db.execute(statement)
        return int(rows[0]["count"]) if rows else 0

    def get_stats(self) -> UserStats:
        """Run the three counts concurrently and combine them."""
        try:
            with ThreadPoolExecutor(max_workers=len(STATS_QUERIES), thread_name_prefix="user_stats") as pool:
                futures = {name: pool.submit(self._count, sql) for name, sql in STATS_QUERIES.items()}
                counts = {name: future.result() for name, future in futures.items()}
            return UserStats(**counts)
        except Exception:
            logger.exception("Error getting user stats")
            raise
