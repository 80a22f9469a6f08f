"""
Shelfmark Backend: Application Package Initializer
====================================================

What: Marks the `app` directory as a Python package.
Who:  Imported by uvicorn (`app.main:app`), pytest, and every module below.

Architecture Note:
    The backend is split into thin layers:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP verbs, paths, status codes
    ├─────────────────────────────────────┤
    │     Services (Book Record Store)    │  ← upsert / soft delete / restore
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← BSON mapping + Pydantic contracts
    ├─────────────────────────────────────┤
    │       Database (Document Store)     │  ← Lazily connected MongoDB client
    └─────────────────────────────────────┘

    Services never see HTTP types; routes never see BSON.
"""

__version__ = "1.0.0"
