"""
maui_care.observability

Observability package.

Responsibilities:
- Structured logging configuration.
- Request context propagation for consistent log enrichment.
"""

# Package marker.
