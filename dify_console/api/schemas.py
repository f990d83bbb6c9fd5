# Schémas Pydantic exposés par l'API d'administration (requêtes et réponses).

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, HttpUrl


class _FromORM(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class InstanceCreate(BaseModel):
    """Modèle de requête pour déclarer une instance Dify.

    Champs:
    - name: libellé local
    - base_url: URL de base de l'instance (http/https)
    - description: texte libre optionnel
    - is_enabled: instance active à la création
    """

    name: str = Field(min_length=1, max_length=100)
    base_url: HttpUrl
    description: str | None = None
    is_enabled: bool = True


class InstanceUpdate(BaseModel):
    """Mise à jour partielle d'une instance: seuls les champs fournis sont modifiés."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    base_url: HttpUrl | None = None
    description: str | None = None
    is_enabled: bool | None = None


class InstanceOut(_FromORM):
    id: int
    name: str
    base_url: str
    description: str | None = None
    is_enabled: bool
    created_at: datetime
    updated_at: datetime


class AccountCreate(BaseModel):
    """Modèle de requête pour déclarer un compte de connexion sur une instance."""

    instance_id: int
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=255)
    nickname: str | None = Field(default=None, max_length=100)
    is_enabled: bool = True


class AccountUpdate(BaseModel):
    """Mise à jour partielle d'un compte; changer l'email efface le token mémorisé."""

    email: str | None = Field(default=None, min_length=3, max_length=255)
    password: str | None = Field(default=None, min_length=1, max_length=255)
    nickname: str | None = Field(default=None, max_length=100)
    is_enabled: bool | None = None


class AccountOut(_FromORM):
    """Compte exposé par l'API: ni mot de passe ni token."""

    id: int
    instance_id: int
    email: str
    nickname: str | None = None
    is_enabled: bool
    token_expires_at: datetime | None = None
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class LoginResponse(BaseModel):
    success: bool
    expires_at: datetime | None = None
    error: str | None = None


class ConnectionTestOut(_FromORM):
    success: bool
    message: str
    instance_id: int
    instance_name: str
    base_url: str
    tested_at: datetime
    account_id: int | None = None
    error: str | None = None


class ConnectionTestSummary(BaseModel):
    total_count: int
    success_count: int
    results: list[ConnectionTestOut]


class SiteOut(_FromORM):
    site_code: str
    title: str
    description: str | None = None
    site_url: str | None = None
    is_enabled: bool
    default_language: str | None = None
    theme: str | None = None
    publish_time: datetime | None = None
    last_sync_at: datetime | None = None


class AppOut(_FromORM):
    id: int
    instance_id: int
    account_id: int
    dify_app_id: str
    name: str
    description: str | None = None
    kind: str
    mode: str
    is_public: bool
    last_sync_at: datetime | None = None
    kind_config: dict[str, Any] = Field(default_factory=dict)
    site: SiteOut | None = None


class AppSyncRequest(BaseModel):
    """Filtres optionnels de synchronisation des applications."""

    instance_id: int | None = None
    account_id: int | None = None
    mode: str | None = None


class DslVersionSummary(BaseModel):
    """Entrée d'historique DSL (sans contenu)."""

    version: int
    dsl_hash: str
    sync_time: datetime
    created_at: datetime


class DslVersionOut(DslVersionSummary):
    dsl_content: dict[str, Any]
    dsl_raw_content: str | None = None


class PruneResponse(BaseModel):
    deleted: int
    remaining: int
