"""
SnipShare Backend: Jinja2 Templates
=====================================

What:  The shared Jinja2Templates instance used by the page routes.
How:   Templates live in snipshare/templates/ and extend layout.html.
       Autoescaping is on, so snippet code and titles render as text.
"""

from pathlib import Path

from fastapi.templating import Jinja2Templates

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
STATIC_DIR = Path(__file__).resolve().parent / "static"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def _datetime_format(value, fmt: str = "%Y-%m-%d %H:%M") -> str:
    if value is None:
        return ""
    return value.strftime(fmt)


templates.env.filters["datetime"] = _datetime_format
