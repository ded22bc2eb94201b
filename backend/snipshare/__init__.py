"""
SnipShare Backend: Application Package Initializer
====================================================

What: Marks the `snipshare` directory as a Python package.
Who:  Imported by uvicorn (`snipshare.main:app`), Alembic, pytest and the
      `snipshare-init-db` console script.

Architecture Note:
    The backend is layered so the page and API adapters share one core:

    ┌─────────────────────────────────────┐
    │   Routes (pages.py / api.py)        │  ← HTTP + HTML concerns only
    ├─────────────────────────────────────┤
    │   Services (accounts, identity,     │  ← Business rules, validation,
    │   snippets, quotes)                 │    error translation
    ├─────────────────────────────────────┤
    │   Models & Schemas (Data)           │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database (Persistence)            │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Services never receive a request object. Routes hand them an
    AsyncSession (per request) and, for identity, an explicit session id.
"""

__version__ = "1.0.0"
