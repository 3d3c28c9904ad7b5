"""FastAPI routers acting as controllers."""

from . import results, sessions, statistics

__all__ = ["results", "sessions", "statistics"]
