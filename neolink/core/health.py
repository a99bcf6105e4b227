"""Health checks: liveness (process up) and readiness (database reachable)."""
from typing import Any, Dict, Optional

from neolink import db
from neolink.db import Database


def check_live() -> Dict[str, Any]:
    """Liveness: process is running."""
    return {"status": "ok", "check": "live"}


def check_ready(database: Optional[Database] = None) -> Dict[str, Any]:
    """Readiness: the given database (or the shared one, if init_db succeeded) answers a ping."""
    db_ok = False
    if database is not None:
        db_ok = database.ping()
    elif db.is_available():
        db_ok = db.get_database().ping()
    return {
        "status": "ok" if db_ok else "degraded",
        "check": "ready",
        "database": "up" if db_ok else "down",
    }
