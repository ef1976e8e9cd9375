"""
WaifuPicks Backend — Application Package Initializer
=====================================================

What: Marks the `waifupicks` directory as a Python package.
Why:  Enables module imports like `from waifupicks.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend keeps the usual layered split:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, token checks
    ├─────────────────────────────────────┤
    │      Ledger Service (Business)      │  ← Upsert-by-outcome protocol
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    The ledger never sees HTTP or identity; routes never build SQL.
"""

__version__ = "1.0.0"
