"""Jinja2 templates shared by all routers."""

from pathlib import Path

from fastapi.templating import Jinja2Templates

from study_dashboard.icons import ICONS, icon_label, resolve_icon

PACKAGE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = PACKAGE_DIR / "templates"
STATIC_DIR = PACKAGE_DIR / "static"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.globals["icon_names"] = list(ICONS)
templates.env.filters["icon"] = resolve_icon
templates.env.filters["icon_label"] = icon_label


def _format_date(value, fmt: str = "%Y-%m-%d %H:%M") -> str:
    return value.strftime(fmt) if value else "-"


templates.env.filters["datetime"] = _format_date
