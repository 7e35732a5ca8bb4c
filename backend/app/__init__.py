"""
SoulSocial Backend: Application Package
=========================================

Layered architecture:

    ┌─────────────────────────────────────┐
    │      Routes (HTTP / WebSocket)      │  ← request parsing, commit, publish
    ├─────────────────────────────────────┤
    │        Services (Business Logic)    │  ← rules, validation, file storage
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← async SQLAlchemy sessions
    └─────────────────────────────────────┘

Services never see Request/Response objects, so they are tested directly with
a database session; routes are tested end-to-end through httpx.
"""

__version__ = "1.0.0"
