# app/core/templates.py
"""
Jinja2 environment for the server-rendered pages.

Every view extends a per-version layout (templates/layouts/<version>.html).
Versions without a layout of their own render with the default one.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import quote, urlparse

from fastapi.templating import Jinja2Templates
from starlette.requests import Request
from starlette.responses import Response

from app.config import DEFAULT_VERSION

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"
LAYOUTS_DIR = TEMPLATES_DIR / "layouts"

_MANGLE_RE = re.compile(r"[^a-z0-9]+", re.IGNORECASE)
# encodeURIComponent leaves these unescaped
_URI_COMPONENT_SAFE = "-_.!~*'()"


def mangle(value: Any) -> str:
    """Turn any run of non-alphanumerics into a single dash (used for ids)."""
    return _MANGLE_RE.sub("-", "" if value is None else str(value))


def bytes_to_megabytes(value: Any) -> str:
    if value is None or value == "":
        return "0.00MB"
    try:
        number = float(value)
    except (TypeError, ValueError):
        return ""
    return f"{number / (1024 * 1024):.2f}MB"


def urlencode_component(value: Any) -> str:
    return quote("" if value is None else str(value), safe=_URI_COMPONENT_SAFE)


def safe_href(value: Any) -> str:
    """Return `value` when it is an absolute http(s) URL, otherwise an empty string.

    Feed URLs, item links and enclosure URLs come from the query string or from
    third-party feeds; anything else (javascript:, data:, relative paths) must
    never reach an href attribute.
    """
    if not isinstance(value, str):
        return ""
    candidate = value.strip()
    parsed = urlparse(candidate)
    if parsed.scheme.lower() in ("http", "https") and parsed.netloc:
        return candidate
    return ""


def resolve_layout(layout: Optional[str]) -> str:
    if layout and re.fullmatch(r"[A-Za-z0-9_-]+", layout) and (LAYOUTS_DIR / f"{layout}.html").is_file():
        return f"layouts/{layout}.html"
    return f"layouts/{DEFAULT_VERSION}.html"


def _build_templates() -> Jinja2Templates:
    env_templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    env_templates.env.filters["mangle"] = mangle
    env_templates.env.filters["bytes_to_megabytes"] = bytes_to_megabytes
    env_templates.env.filters["urlencode_component"] = urlencode_component
    env_templates.env.filters["safe_href"] = safe_href
    return env_templates


templates = _build_templates()


def render_view(
    request: Request,
    view: str,
    context: Dict[str, Any],
    *,
    layout: str,
    status_code: int = 200,
) -> Response:
    ctx = dict(context)
    ctx["layout"] = layout
    ctx["layout_template"] = resolve_layout(layout)
    return templates.TemplateResponse(request, f"{view}.html", ctx, status_code=status_code)
