"""
Modèle de version DSL (POPO).

Ce module définit le modèle de domaine DslVersion: un instantané immuable du DSL d'une application,
numéroté par application et identifié par l'empreinte de son contenu.
"""

# ============================================================
# Module : dify_console/domain/dsl_version.py
# Objet  : Instantané versionné du DSL d'une application.
# ============================================================

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class DslVersion:
    """
    Version DSL d'une application (objet domaine).

    Attributs
    - id: identifiant de la ligne en base.
    - app_id: identifiant local de l'application propriétaire.
    - version: numéro strictement croissant par application, à partir de 1.
    - dsl_content: document DSL structuré.
    - dsl_hash: empreinte SHA-256 (hex, 64 caractères) du contenu normalisé.
    - dsl_raw_content: forme texte (YAML) telle que reçue, optionnelle.
    - sync_time: instant de la synchronisation ayant créé la version.
    - created_at / updated_at: horodatage de la ligne.
    """

    id: int
    app_id: int
    version: int
    dsl_content: dict[str, Any]
    dsl_hash: str
    dsl_raw_content: str | None
    sync_time: datetime
    created_at: datetime
    updated_at: datetime

    @property
    def short_hash(self) -> str:
        """Préfixe lisible de l'empreinte (8 caractères)."""
        return self.dsl_hash[:8]

    def __str__(self) -> str:
        return f"DSL v{self.version} de l'application #{self.app_id}"
