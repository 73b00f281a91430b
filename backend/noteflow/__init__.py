"""
NoteFlow Backend — Application Package Initializer
====================================================

What: Marks the `noteflow` directory as a Python package.
Who:  Imported by uvicorn (noteflow.main:app), Alembic and pytest.

Architecture Note:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, envelopes
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← access policy, purchases,
    │                                     │    comments, likes, bookmarks
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes never touch SQL directly; services take an AsyncSession as
    their first argument and raise NoteFlowError subclasses that the
    exception handlers in main.py turn into error envelopes.
"""

__version__ = "1.0.0"
