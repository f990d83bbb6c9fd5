"""Définition et chargement des paramètres de configuration applicative.

Objectif du module
------------------
- Centraliser les paramètres (env/.env) via Pydantic Settings
- Résoudre le fichier `.env` à utiliser selon la stratégie: ENV_FILE > .env.{APP_ENV} > .env
"""

import os
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Détermination du fichier .env à utiliser avec priorité:
# 1) ENV_FILE (chemin explicite)
# 2) .env.{APP_ENV} si présent
# 3) .env (défaut)
_cwd = Path.cwd()
_env_file_from_env = os.getenv("ENV_FILE")
if _env_file_from_env:
    _ENV_FILE_PATH = _env_file_from_env
else:
    _app_env = os.getenv("APP_ENV", "dev")
    _candidate_specific = _cwd / f".env.{_app_env}"
    _candidate_default = _cwd / ".env"
    if _candidate_specific.exists():
        _ENV_FILE_PATH = _candidate_specific
    else:
        _ENV_FILE_PATH = _candidate_default


class Settings(BaseSettings):
    """Modèle de configuration chargé depuis l'environnement et .env."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE_PATH,
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
    )
    APP_NAME: str = "dify-console-sync"
    APP_ENV: str = "dev"
    APP_DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str | None = None

    # Dify Console API
    DIFY_HTTP_TIMEOUT: float = 30.0
    DIFY_APPS_PAGE_LIMIT: int = 30
    DIFY_EXPORT_INCLUDE_SECRET: bool = False
    # Durée de vie supposée d'un token quand ni le JWT ni la réponse ne la donnent
    DIFY_TOKEN_DEFAULT_TTL_SECONDS: int = 86400

    # Nombre maximal de versions DSL conservées par application
    DSL_RETENTION_LIMIT: int = 10

    @field_validator("DSL_RETENTION_LIMIT")
    @classmethod
    def _retention_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("DSL_RETENTION_LIMIT doit être >= 0")
        return value

    @field_validator("DIFY_APPS_PAGE_LIMIT")
    @classmethod
    def _page_limit_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("DIFY_APPS_PAGE_LIMIT doit être >= 1")
        return value


def get_settings() -> Settings:
    """Construit et retourne la configuration de l'application."""
    return Settings()
