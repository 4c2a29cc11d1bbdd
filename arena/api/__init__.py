"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from arena.api import app

    uvicorn arena.api:app --reload
"""

from arena.api.app import app

__all__ = ["app"]
