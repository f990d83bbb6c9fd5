# ============================================================
# Module : dify_console/infra/repo/console_repo.py
# Objet  : Accès SQL (CRUD) instances, comptes et applications.
# ============================================================
"""Dépôts SQLAlchemy des ressources Dify miroir (instances, comptes, applications)."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ...domain.errors import NotFoundError
from .models import DifyAccountORM, DifyAppORM, DifyInstanceORM


class InstanceRepo:
    """CRUD minimal pour DifyInstanceORM."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, instance_id: int) -> DifyInstanceORM | None:
        return self._session.get(DifyInstanceORM, instance_id)

    def require(self, instance_id: int) -> DifyInstanceORM:
        """Retourne l'instance ou lève NotFoundError."""
        row = self.get(instance_id)
        if row is None:
            raise NotFoundError(f"instance {instance_id} introuvable")
        return row

    def list(self, enabled_only: bool = False) -> list[DifyInstanceORM]:
        stmt = select(DifyInstanceORM).order_by(DifyInstanceORM.id)
        if enabled_only:
            stmt = stmt.where(DifyInstanceORM.is_enabled.is_(True))
        return list(self._session.execute(stmt).scalars())

    def create(
        self,
        name: str,
        base_url: str,
        description: str | None = None,
        is_enabled: bool = True,
    ) -> DifyInstanceORM:
        row = DifyInstanceORM(
            name=name,
            base_url=base_url.rstrip("/"),
            description=description,
            is_enabled=is_enabled,
        )
        self._session.add(row)
        self._session.flush()
        return row

    def set_enabled(self, instance_id: int, enabled: bool) -> DifyInstanceORM:
        row = self.require(instance_id)
        row.is_enabled = enabled
        row.touch()
        self._session.flush()
        return row

    def update(
        self,
        instance_id: int,
        name: str | None = None,
        base_url: str | None = None,
        description: str | None = None,
        is_enabled: bool | None = None,
    ) -> DifyInstanceORM:
        """Met à jour les champs fournis (None = inchangé)."""
        row = self.require(instance_id)
        if name is not None:
            row.name = name
        if base_url is not None:
            row.base_url = base_url.rstrip("/")
        if description is not None:
            row.description = description
        if is_enabled is not None:
            row.is_enabled = is_enabled
        row.touch()
        self._session.flush()
        return row


class AccountRepo:
    """CRUD minimal pour DifyAccountORM."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, account_id: int) -> DifyAccountORM | None:
        return self._session.get(DifyAccountORM, account_id)

    def require(self, account_id: int) -> DifyAccountORM:
        """Retourne le compte ou lève NotFoundError."""
        row = self.get(account_id)
        if row is None:
            raise NotFoundError(f"compte {account_id} introuvable")
        return row

    def list(
        self, instance_id: int | None = None, enabled_only: bool = False
    ) -> list[DifyAccountORM]:
        stmt = select(DifyAccountORM).order_by(DifyAccountORM.id)
        if instance_id is not None:
            stmt = stmt.where(DifyAccountORM.instance_id == instance_id)
        if enabled_only:
            stmt = stmt.where(DifyAccountORM.is_enabled.is_(True))
        return list(self._session.execute(stmt).scalars())

    def create(
        self,
        instance_id: int,
        email: str,
        password: str,
        nickname: str | None = None,
        is_enabled: bool = True,
    ) -> DifyAccountORM:
        row = DifyAccountORM(
            instance_id=instance_id,
            email=email,
            password=password,
            nickname=nickname,
            is_enabled=is_enabled,
        )
        self._session.add(row)
        self._session.flush()
        return row

    def set_enabled(self, account_id: int, enabled: bool) -> DifyAccountORM:
        row = self.require(account_id)
        row.is_enabled = enabled
        row.touch()
        self._session.flush()
        return row

    def update(
        self,
        account_id: int,
        email: str | None = None,
        password: str | None = None,
        nickname: str | None = None,
        is_enabled: bool | None = None,
    ) -> DifyAccountORM:
        """Met à jour les champs fournis (None = inchangé).

        Un changement d'email invalide le token mémorisé. Un email déjà pris sur l'instance
        lève IntegrityError au flush.
        """
        row = self.require(account_id)
        if email is not None and email != row.email:
            row.email = email
            row.access_token = None
            row.token_expires_at = None
        if password is not None:
            row.password = password
        if nickname is not None:
            row.nickname = nickname
        if is_enabled is not None:
            row.is_enabled = is_enabled
        row.touch()
        self._session.flush()
        return row


class AppRepo:
    """Lecture/écriture des applications miroir."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, app_id: int) -> DifyAppORM | None:
        return self._session.get(DifyAppORM, app_id)

    def require(self, app_id: int) -> DifyAppORM:
        """Retourne l'application ou lève NotFoundError."""
        row = self.get(app_id)
        if row is None:
            raise NotFoundError(f"application {app_id} introuvable")
        return row

    def find_by_remote_id(self, instance_id: int, dify_app_id: str) -> DifyAppORM | None:
        stmt = select(DifyAppORM).where(
            DifyAppORM.instance_id == instance_id, DifyAppORM.dify_app_id == dify_app_id
        )
        return self._session.execute(stmt).scalars().first()

    def list(
        self,
        instance_id: int | None = None,
        account_id: int | None = None,
        kind: str | None = None,
    ) -> list[DifyAppORM]:
        stmt = select(DifyAppORM).order_by(DifyAppORM.id)
        if instance_id is not None:
            stmt = stmt.where(DifyAppORM.instance_id == instance_id)
        if account_id is not None:
            stmt = stmt.where(DifyAppORM.account_id == account_id)
        if kind is not None:
            stmt = stmt.where(DifyAppORM.kind == kind)
        return list(self._session.execute(stmt).scalars())

    def add(self, app: DifyAppORM) -> DifyAppORM:
        self._session.add(app)
        self._session.flush()
        return app
