"""Sites publics des applications Dify.

Le détail distant d'une application peut porter un bloc `site` (page web publique). Ce module
extrait de ce bloc les champs recopiés dans `dify_sites`; l'identifiant du site est son `code`
(à défaut `access_token`, puis `id`).
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from ..core.clock import from_unix

DEFAULT_SITE_TITLE = "Site sans titre"

_WORKFLOW_PATH = "/workflow/"
_CHATBOT_PATH = "/chatbot/"


def site_code(site_data: dict[str, Any]) -> str | None:
    for key in ("code", "access_token", "id"):
        value = site_data.get(key)
        if value is not None:
            return value if isinstance(value, str) and value else None
    return None


def site_url(site_data: dict[str, Any], mode: str | None) -> str | None:
    """URL publique: `url`/`site_url` si fournie, sinon `app_base_url` + chemin + code."""
    url = site_data.get("url") or site_data.get("site_url")
    if isinstance(url, str) and url:
        return url
    base = site_data.get("app_base_url")
    code = site_data.get("code") or site_data.get("access_token")
    if not isinstance(base, str) or not isinstance(code, str) or not base or not code:
        return None
    path = _WORKFLOW_PATH if mode == "workflow" else _CHATBOT_PATH
    return f"{base.rstrip('/')}{path}{code}"


def _text(site_data: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = site_data.get(key)
        if value is not None:
            return value if isinstance(value, str) else None
    return None


def _string_keyed(value: Any) -> dict[str, Any] | None:
    if not isinstance(value, dict):
        return None
    kept = {k: v for k, v in value.items() if isinstance(k, str)}
    return kept or None


def _publish_time(value: Any) -> datetime | None:
    parsed = from_unix(value)
    if parsed is not None or not isinstance(value, str):
        return parsed
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def extract_site_fields(site_data: Any, mode: str | None) -> dict[str, Any] | None:
    """Champs du site à enregistrer, ou None si le bloc est absent, vide ou sans code.

    `mode` est le mode distant de l'application (choix du chemin de l'URL publique).
    """
    if not isinstance(site_data, dict) or not site_data:
        return None
    code = site_code(site_data)
    if code is None:
        return None
    access_code = site_data.get("code") or site_data.get("access_token")
    return {
        "site_code": code,
        "title": _text(site_data, "title", "name") or DEFAULT_SITE_TITLE,
        "description": _text(site_data, "description"),
        "site_url": site_url(site_data, mode),
        "is_enabled": isinstance(access_code, str) and bool(access_code),
        "default_language": _text(site_data, "default_language"),
        "theme": _text(site_data, "theme"),
        "copyright": _text(site_data, "copyright"),
        "privacy_policy": _text(site_data, "privacy_policy"),
        "disclaimer": _text(site_data, "custom_disclaimer", "disclaimer"),
        "custom_domain": _string_keyed(
            site_data.get("customize_domain") or site_data.get("custom_domain")
        ),
        "custom_config": _string_keyed(
            site_data.get("custom_config") or site_data.get("config")
        ),
        "publish_time": _publish_time(site_data.get("created_at")),
    }
