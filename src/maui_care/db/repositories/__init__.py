"""
maui_care.db.repositories

Repository package.

Responsibilities:
- Group data-access repositories for the persistence layer.
"""

# Package marker; repositories are imported directly from submodules.


# --- Module Notes -----------------------------------------------------------
# Repositories stay thin; ownership and status rules belong in services.
