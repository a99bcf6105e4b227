"""neolink account data-access layer: Postgres connection pool, user repository, seed script."""

__version__ = "0.1.0"
