"""
Objets valeur échangés avec la passerelle Dify et l'orchestrateur de synchronisation.

Objets immuables, champs optionnels absents par défaut.
"""

# ============================================================
# Module : dify_console/domain/results.py
# Objet  : DTO requêtes/réponses (POPO figés).
# ============================================================

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..core.http_constants import DIFY_DEFAULT_PAGE_LIMIT


@dataclass(frozen=True)
class AuthenticationResult:
    """Résultat d'une connexion à une instance Dify."""

    success: bool
    token: str | None = None
    expires_at: datetime | None = None
    error: str | None = None


@dataclass(frozen=True)
class AppListQuery:
    """Critères de listage des applications distantes."""

    page: int = 1
    limit: int = DIFY_DEFAULT_PAGE_LIMIT
    name: str | None = None
    mode: str | None = None

    def to_params(self) -> dict[str, Any]:
        """Retourne les paramètres de requête, uniquement ceux différents des défauts."""
        params: dict[str, Any] = {}
        if self.page > 1:
            params["page"] = self.page
        if self.limit != DIFY_DEFAULT_PAGE_LIMIT:
            params["limit"] = self.limit
        if self.name is not None:
            params["name"] = self.name
        if self.mode is not None:
            params["mode"] = self.mode
        return params


@dataclass(frozen=True)
class AppListResult:
    """Page d'applications distantes."""

    success: bool
    apps: list[dict[str, Any]] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = DIFY_DEFAULT_PAGE_LIMIT
    has_more: bool = False
    error: str | None = None


@dataclass(frozen=True)
class AppDetailResult:
    """Détail d'une application distante."""

    success: bool
    app_data: dict[str, Any] | None = None
    error: str | None = None


@dataclass(frozen=True)
class AppDslExportResult:
    """DSL exporté: document structuré et sa forme texte (YAML)."""

    success: bool
    dsl_content: dict[str, Any] | None = None
    raw_content: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class SyncResult:
    """Issue d'une synchronisation DSL pour une application.

    - success: False uniquement si la récupération distante (ou un prérequis) a échoué.
    - created: True si une nouvelle version a été enregistrée.
    - version: numéro de la version créée, ou de la dernière version quand rien n'a changé.
    - pruned: nombre d'anciennes versions supprimées par la rétention.
    """

    success: bool
    created: bool
    message: str
    version: int | None = None
    dsl_hash: str | None = None
    pruned: int = 0
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Sérialise le résultat pour l'API/CLI (clés absentes quand non pertinentes)."""
        out: dict[str, Any] = {
            "success": self.success,
            "created": self.created,
            "message": self.message,
        }
        if self.version is not None:
            out["version"] = self.version
        if self.dsl_hash is not None:
            out["dsl_hash"] = self.dsl_hash
        if self.created:
            out["pruned"] = self.pruned
        if self.error is not None:
            out["error"] = self.error
        return out


@dataclass(frozen=True)
class ConnectionTestResult:
    """Issue d'un test de connexion (login d'un compte actif) sur une instance."""

    success: bool
    message: str
    instance_id: int
    instance_name: str
    base_url: str
    tested_at: datetime
    account_id: int | None = None
    error: str | None = None


@dataclass
class SyncStats:
    """Compteurs d'une synchronisation DSL en lot."""

    total: int = 0
    success: int = 0
    new_versions: int = 0
    no_changes: int = 0
    errors: int = 0
    error_details: list[str] = field(default_factory=list)

    def record(self, result: SyncResult) -> None:
        """Met à jour les compteurs à partir d'un résultat unitaire."""
        if not result.success:
            self.errors += 1
            if result.error:
                self.error_details.append(result.error)
            return
        self.success += 1
        if result.created:
            self.new_versions += 1
        else:
            self.no_changes += 1
