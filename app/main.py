"""
HTTP Server for Finance Tracker

Serves the REST API that clients use to read and write entries, export
them and trigger syncs.

Run with:
    python -m app.main
or
    uvicorn app.main:app --port 3000

DESIGN PRINCIPLES:
1. The server works with no remote configured at all
2. Configuration comes from the environment (.env supported)
3. Startup reports which settings groups loaded
"""

import logging

import structlog
import uvicorn

from finance_tracker.api import create_app
from finance_tracker.config import get_settings, validate_all_settings


logger = structlog.get_logger(__name__)


def build_app():
    """Create the API from environment settings and log the settings check."""
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.app.debug_mode else logging.INFO,
        format="%(message)s",
    )
    checks = validate_all_settings()
    failed = sorted(name for name, ok in checks.items() if ok is False)
    if failed:
        logger.warning("settings_invalid", groups=failed, details=checks)
    return create_app()


app = build_app()


def main():
    """Main application entry point."""
    settings = get_settings().app
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
