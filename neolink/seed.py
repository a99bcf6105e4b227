"""
One-shot database seeding: apply schema.sql, then create the demo accounts that are missing.
Run from project root: python -m neolink.seed  (or the neolink-seed console script)
"""
import logging
import sys
from pathlib import Path

from neolink.core.log_setup import setup_logging
from neolink.db import Database, close_db, get_database, init_db
from neolink.errors import AccountError
from neolink.repositories import PostgresUserRepository, UserRepository

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"

# Two password accounts, two key accounts
DEMO_USERS = [
    {"username": "NetRunner_42", "password": "password123", "node_id": "node-42abc1"},
    {"username": "CyberPunk", "private_key": "secure-private-key-example", "node_id": "node-3b9c2d"},
    {"username": "ShadowRunner", "password": "shadow123", "node_id": "node-5e7f3a"},
    {"username": "GhostInTheShell", "private_key": "ghost-private-key-example", "node_id": "node-1d4e8c"},
]


def apply_schema(database: Database, schema_path: Path = SCHEMA_PATH) -> None:
    schema_sql = schema_path.read_text(encoding="utf-8")
    database.execute(schema_sql)
    logger.info("Database schema created")


def seed(database: Database, repository: UserRepository, users=None) -> int:
    """Apply the schema and insert demo users. Returns a process exit code (1 if the schema could not be applied)."""
    try:
        apply_schema(database)
    except (OSError, AccountError) as e:
        logger.error("Error initializing database: %s", e)
        return 1

    logger.info("Creating initial users...")
    for user in DEMO_USERS if users is None else users:
        username = user["username"]
        try:
            if repository.find_by_username(username) is not None:
                logger.info("User %s already exists", username)
                continue
            repository.create(
                username,
                user["node_id"],
                password=user.get("password"),
                private_key=user.get("private_key"),
            )
            logger.info("Created user: %s", username)
        except AccountError as e:
            logger.warning("Error creating user %s: %s", username, e)
        except Exception:
            logger.exception("Error creating user %s", username)

    logger.info("Database initialization completed!")
    return 0


def main() -> int:
    setup_logging()
    try:
        init_db()
        database = get_database()
        return seed(database, PostgresUserRepository(database))
    finally:
        close_db()


if __name__ == "__main__":
    sys.exit(main())
