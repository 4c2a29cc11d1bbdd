"""Database layer package.

Public re-exports so callers can write::

    from arena.db import get_connection, init_db
    from arena.db import votes
"""

from arena.db.connection import get_connection
from arena.db.migrations import init_db
from arena.db import votes

__all__ = ["get_connection", "init_db", "votes"]
