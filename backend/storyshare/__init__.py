"""
StoryShare Backend — Application Package Initializer
====================================================

What: Marks the `storyshare` directory as a Python package.
Who:  Imported by uvicorn (`storyshare.main:app`), pytest, and the API client.

Architecture Note:
    The backend is layered the same way top to bottom:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, envelope
    ├─────────────────────────────────────┤
    │   Services (Stores, Upload Service) │  ← validation, persistence, S3
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← documents + pydantic contracts
    ├─────────────────────────────────────┤
    │   Database (Connection Manager)     │  ← memoized motor connection
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
