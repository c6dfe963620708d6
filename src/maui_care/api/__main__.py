"""
maui_care.api.__main__

Entrypoint for running the care service via `python -m maui_care.api`.
"""

from __future__ import annotations

import uvicorn

from maui_care.api.app import create_app
from maui_care.settings import get_settings


def main() -> None:
    settings = get_settings()
    app = create_app(settings=settings)

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # structlog
    )


if __name__ == "__main__":
    main()
