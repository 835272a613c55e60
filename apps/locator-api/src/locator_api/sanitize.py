from __future__ import annotations

import html
from urllib.parse import quote, urlsplit

_SAFE_LINK_SCHEMES = {"http", "https"}


def sanitize_html_text(value: object) -> str:
    if value is None:
        return ""
    return html.escape(str(value), quote=True)


def safe_http_url(value: str | None) -> str | None:
    """Return *value* when it is an absolute http(s) URL, else ``None``."""
    if not value:
        return None
    candidate = value.strip()
    try:
        parts = urlsplit(candidate)
    except ValueError:
        return None
    if parts.scheme.lower() not in _SAFE_LINK_SCHEMES or not parts.netloc:
        return None
    return candidate


def tel_href(phone: str) -> str:
    return "tel:" + quote(phone.strip(), safe="+")
