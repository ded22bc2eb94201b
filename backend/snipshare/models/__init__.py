# Models package init
"""
SnipShare Backend: ORM Models
===============================

Importing this package registers every table with `Base.metadata`, which is
what `Database.create_schema()` and Alembic's autogenerate rely on.

    - user.py:     users     (credential store)
    - snippet.py:  snippets  (snippet store)
"""

from snipshare.models.snippet import Snippet
from snipshare.models.user import User

__all__ = ["Snippet", "User"]
