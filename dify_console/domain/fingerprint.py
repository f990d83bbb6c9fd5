"""Empreinte déterministe du contenu DSL.

Le contenu est normalisé avant hachage:
- suppression des champs de tenue (`id`, `created_at`, `updated_at`) des mappings atteints
  par des clés de mapping; les listes sont conservées telles quelles (ordre et contenu, y
  compris les `id` des éléments, qui désignent par exemple une base de connaissances liée);
- sérialisation JSON à clés triées, séparateurs compacts, Unicode non échappé.

Deux documents logiquement identiques (mêmes paires clé/valeur, quel que soit l'ordre d'insertion)
produisent donc la même empreinte.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

VOLATILE_FIELDS: frozenset[str] = frozenset({"id", "created_at", "updated_at"})


def normalize(content: Any) -> Any:
    """Retire les champs volatils des mappings imbriqués; les listes ne sont pas parcourues."""
    if not isinstance(content, dict):
        return content
    return {
        key: normalize(value) if isinstance(value, dict) else value
        for key, value in content.items()
        if key not in VOLATILE_FIELDS
    }


def canonical_json(content: Any) -> str:
    """Sérialisation canonique. Lève TypeError sur une valeur non sérialisable."""
    return json.dumps(
        normalize(content),
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
    )


def fingerprint(content: Any) -> str:
    """Retourne l'empreinte SHA-256 (hex, 64 caractères) du contenu normalisé."""
    return hashlib.sha256(canonical_json(content).encode("utf-8")).hexdigest()
