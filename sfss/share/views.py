from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import urlencode

from fastapi.templating import Jinja2Templates

from sfss.core.config import TEMPLATES_DIR
from sfss.core.settings import AppSettings
from sfss.objects.models import StoredObject

# Autoescaping is on for *.html, so codes, passwords and pasted text are always escaped.
templates = Jinja2Templates(directory=TEMPLATES_DIR)


def with_query(url: str, **params: Optional[str]) -> str:
    """Append the non-empty params as a percent-encoded query string."""
    present = {k: v for k, v in params.items() if v}
    if not present:
        return url
    return f"{url}?{urlencode(present)}"


def share_links(
    app: AppSettings,
    code: str,
    password: Optional[str],
    lang: Optional[str] = None,
) -> Dict[str, str]:
    base = app.share_url(code)
    return {
        "view_url": with_query(base, password=password, lang=lang),
        "raw_url": with_query(f"{base}/raw", password=password),
    }


def pick_language(app: AppSettings, lang: Optional[str]) -> Optional[str]:
    if lang and lang in app.languages:
        return lang
    return None


def base_context(app: AppSettings) -> Dict[str, Any]:
    return {
        "title": app.title,
        "label": app.label,
        "webroot": app.webroot,
        "url": app.url,
        "languages": app.languages,
    }


def decode_for_view(obj: StoredObject) -> Optional[str]:
    """Text to show in the highlighted block, or None when the object should be offered as a download."""
    if not obj.is_text:
        return None
    try:
        return obj.content.decode("utf-8")
    except UnicodeDecodeError:
        return None
