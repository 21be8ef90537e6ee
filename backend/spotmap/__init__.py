"""
SpotMap Backend: Application Package Initializer
=================================================

What: Marks the `spotmap` directory as a Python package.
Who:  Imported by uvicorn (`spotmap.main:app`), Alembic and pytest.

Architecture Note:
    The backend is layered the same way top to bottom:

    ┌─────────────────────────────────────┐
    │      Routes (API + View Layer)      │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (views, repository,      │  ← Composition, validation,
    │   auth session, location, media)    │    error mapping
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy rows + Pydantic documents
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    The Spot document (location, content, metadata, interaction log) is the
    only aggregate. Every other piece either stores it, decorates it with the
    caller's identity, or renders it for one of the four views.
"""

__version__ = "1.0.0"
