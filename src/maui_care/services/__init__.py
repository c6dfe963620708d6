"""
maui_care.services

Service-layer package.

Responsibilities:
- Own transaction boundaries and persistence decisions.
- Enforce resident ownership and status rules.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services should be pure Python and easily testable with real sessions on sqlite.
