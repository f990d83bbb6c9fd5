# ============================================================
# Module : dify_console/infra/repo/dsl_version_repo.py
# Objet  : Accès SQL pour les versions DSL (magasin de versions).
# Invariants :
#  - (app_id, version) unique; numéros attribués max + 1.
#  - Aucune mise à jour en place d'une version existante.
# ============================================================
"""Magasin des versions DSL par application."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...core.clock import ensure_utc, utcnow
from ...domain.dsl_version import DslVersion
from ...domain.retention import deletion_candidates
from .models import AppDslVersionORM


def _to_domain(row: AppDslVersionORM) -> DslVersion:
    return DslVersion(
        id=row.id,
        app_id=row.app_id,
        version=row.version,
        dsl_content=row.dsl_content or {},
        dsl_hash=row.dsl_hash,
        dsl_raw_content=row.dsl_raw_content,
        sync_time=ensure_utc(row.sync_time),
        created_at=ensure_utc(row.created_at),
        updated_at=ensure_utc(row.updated_at),
    )


class DslVersionRepo:
    """Requêtes et écritures sur `app_dsl_versions`."""

    def __init__(self, session: Session) -> None:
        """Construit le repo avec une session (SQLAlchemy)."""
        self._session = session

    def latest(self, app_id: int) -> DslVersion | None:
        """Retourne la version de plus haut numéro pour l'application, ou None."""
        stmt = (
            select(AppDslVersionORM)
            .where(AppDslVersionORM.app_id == app_id)
            .order_by(AppDslVersionORM.version.desc())
            .limit(1)
        )
        row = self._session.execute(stmt).scalars().first()
        return _to_domain(row) if row else None

    def by_hash(self, app_id: int, dsl_hash: str) -> DslVersion | None:
        """Retourne une version de l'application ayant cette empreinte (la plus récente)."""
        stmt = (
            select(AppDslVersionORM)
            .where(AppDslVersionORM.app_id == app_id, AppDslVersionORM.dsl_hash == dsl_hash)
            .order_by(AppDslVersionORM.version.desc())
            .limit(1)
        )
        row = self._session.execute(stmt).scalars().first()
        return _to_domain(row) if row else None

    def by_version_number(self, app_id: int, version: int) -> DslVersion | None:
        stmt = select(AppDslVersionORM).where(
            AppDslVersionORM.app_id == app_id, AppDslVersionORM.version == version
        )
        row = self._session.execute(stmt).scalars().first()
        return _to_domain(row) if row else None

    def history(self, app_id: int) -> Iterator[DslVersion]:
        """Parcourt l'historique, du plus récent au plus ancien.

        Chaque appel exécute une nouvelle requête; l'itérateur retourné n'est pas réutilisable.
        """
        stmt = (
            select(AppDslVersionORM)
            .where(AppDslVersionORM.app_id == app_id)
            .order_by(AppDslVersionORM.version.desc())
        )
        for row in self._session.execute(stmt).scalars():
            yield _to_domain(row)

    def count_for(self, app_id: int) -> int:
        stmt = select(func.count(AppDslVersionORM.id)).where(AppDslVersionORM.app_id == app_id)
        return int(self._session.execute(stmt).scalar_one())

    def since(self, when: datetime) -> list[DslVersion]:
        """Versions synchronisées à partir de `when`, synchronisation la plus récente d'abord."""
        stmt = (
            select(AppDslVersionORM)
            .where(AppDslVersionORM.sync_time >= ensure_utc(when))
            .order_by(AppDslVersionORM.sync_time.desc(), AppDslVersionORM.id.desc())
        )
        return [_to_domain(r) for r in self._session.execute(stmt).scalars()]

    def _max_version(self, app_id: int) -> int:
        stmt = select(func.max(AppDslVersionORM.version)).where(
            AppDslVersionORM.app_id == app_id
        )
        return int(self._session.execute(stmt).scalar_one_or_none() or 0)

    def append(
        self,
        app_id: int,
        dsl_content: dict[str, Any],
        dsl_hash: str,
        raw_content: str | None = None,
    ) -> DslVersion:
        """Crée la version suivante (max + 1, ou 1) en une seule insertion.

        Lève IntegrityError si le numéro est déjà pris (écritures concurrentes).
        """
        now = utcnow()
        row = AppDslVersionORM(
            app_id=app_id,
            version=self._max_version(app_id) + 1,
            dsl_content=dsl_content,
            dsl_hash=dsl_hash,
            dsl_raw_content=raw_content,
            sync_time=now,
            created_at=now,
            updated_at=now,
        )
        self._session.add(row)
        try:
            self._session.flush()
        except IntegrityError:
            self._session.rollback()
            raise
        return _to_domain(row)

    def prune_oldest(self, app_id: int, keep: int) -> int:
        """Supprime toutes les versions sauf les `keep` plus récentes; retourne le nombre supprimé."""
        stmt = (
            select(AppDslVersionORM.id)
            .where(AppDslVersionORM.app_id == app_id)
            .order_by(AppDslVersionORM.version.desc())
        )
        ids_desc = list(self._session.execute(stmt).scalars())
        doomed = deletion_candidates(ids_desc, keep)
        if not doomed:
            return 0
        result = self._session.execute(
            delete(AppDslVersionORM)
            .where(AppDslVersionORM.id.in_(doomed))
            .execution_options(synchronize_session=False)
        )
        self._session.flush()
        # Les objets supprimés ne doivent plus être servis par l'identity map.
        self._session.expire_all()
        return int(result.rowcount or 0)
