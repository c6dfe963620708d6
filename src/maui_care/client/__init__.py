"""
maui_care.client

Client package for talking to the care service.

Responsibilities:
- Remote procedure client over httpx with structured errors.
- Identity provider that resolves the current principal and bearer token.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Cache and coordinator code depend on this boundary, never on routers directly.
