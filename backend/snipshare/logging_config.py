"""
SnipShare Backend: Logging Setup
==================================

What:  setup_logging(), the one place the root logger is configured.
Who:   The application lifespan (main.py) and the `snipshare-init-db`
       console script. Importing this module has no side effects, so the
       script can configure logging without building the application.
"""

import logging
import sys


def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the whole application.

    Format: 2024-01-15T12:00:00 [INFO] snipshare.access: GET / 200 12.3ms [a1b2c3d4] from ...

    Called once at startup, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries that log every operation.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)
