"""
Configuration de l'environnement Alembic pour les migrations de base de données.

Supporte les modes offline et online; l'URL vient de `DATABASE_URL` (défaut: `./dify_console.db`).
"""

from __future__ import annotations

import os
import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import create_engine, pool

from alembic import context  # type: ignore[attr-defined]

# Permet d'importer le projet quand Alembic est lancé depuis la racine sans installation
_root = Path(__file__).resolve().parent.parent
if str(_root) not in sys.path:
    sys.path.append(str(_root))

from dify_console.infra.repo.models import Base  # noqa: E402

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
_DEFAULT_URL = "sqlite:///./dify_console.db"


def run_migrations_offline() -> None:
    """Exécute les migrations sans connexion (SQL émis avec bindings littéraux)."""
    url = os.getenv("DATABASE_URL", _DEFAULT_URL)
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Exécute les migrations sur une connexion active."""
    url = os.getenv("DATABASE_URL", _DEFAULT_URL)
    connectable = create_engine(url, poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
