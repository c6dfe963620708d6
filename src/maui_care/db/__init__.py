"""
maui_care.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide ORM models, engine/session setup, and repositories.
"""

# Package marker.
