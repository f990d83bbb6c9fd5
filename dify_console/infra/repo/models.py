"""SQLAlchemy models for persistence layer (instances, accounts, apps, sites, DSL versions)."""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship

from ...core.clock import ensure_utc, utcnow


class Base(DeclarativeBase):
    """Classe de base pour tous les modèles SQLAlchemy."""

    metadata = MetaData()


class TimestampMixin:
    """Horodatage création/modification partagé par toutes les tables."""

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def touch(self) -> None:
        """Marque la ligne comme modifiée maintenant."""
        self.updated_at = utcnow()


class DifyInstanceORM(TimestampMixin, Base):
    """Instance Dify distante (déploiement identifié par son URL de base)."""

    __tablename__ = "dify_instances"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    base_url = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_enabled = Column(Boolean, nullable=False, default=True)

    accounts = relationship(
        "DifyAccountORM",
        back_populates="instance",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __str__(self) -> str:
        return self.name


class DifyAccountORM(TimestampMixin, Base):
    """Compte de connexion à une instance, avec son token de session."""

    __tablename__ = "dify_accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    instance_id = Column(
        Integer, ForeignKey("dify_instances.id", ondelete="CASCADE"), nullable=False, index=True
    )
    email = Column(String(255), nullable=False)
    password = Column(String(255), nullable=False)
    nickname = Column(String(100), nullable=True)
    access_token = Column(Text, nullable=True)
    token_expires_at = Column(DateTime(timezone=True), nullable=True)
    is_enabled = Column(Boolean, nullable=False, default=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    instance = relationship("DifyInstanceORM", back_populates="accounts")

    __table_args__ = (UniqueConstraint("instance_id", "email", name="uq_account_instance_email"),)

    @property
    def display_name(self) -> str:
        return self.nickname or self.email

    def is_token_expired(self, now=None) -> bool:
        """Vrai sans token, sans échéance, ou si l'échéance est atteinte."""
        if not self.access_token or self.token_expires_at is None:
            return True
        return ensure_utc(self.token_expires_at) <= (now or utcnow())

    def __str__(self) -> str:
        return self.display_name


class DifyAppORM(TimestampMixin, Base):
    """Application distante synchronisée.

    Champs communs + `kind` (famille) et `kind_config` (configuration propre à la famille).
    """

    __tablename__ = "dify_apps"

    id = Column(Integer, primary_key=True, autoincrement=True)
    instance_id = Column(
        Integer, ForeignKey("dify_instances.id", ondelete="CASCADE"), nullable=False, index=True
    )
    account_id = Column(
        Integer, ForeignKey("dify_accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    dify_app_id = Column(String(64), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(255), nullable=True)
    is_public = Column(Boolean, nullable=False, default=False)
    created_by_dify_user = Column(String(255), nullable=True)
    dify_created_at = Column(DateTime(timezone=True), nullable=True)
    dify_updated_at = Column(DateTime(timezone=True), nullable=True)
    last_sync_at = Column(DateTime(timezone=True), nullable=True)
    kind = Column(String(32), nullable=False)
    mode = Column(String(32), nullable=False)
    kind_config = Column(JSON, nullable=False, default=dict)

    instance = relationship("DifyInstanceORM")
    account = relationship("DifyAccountORM")
    versions = relationship(
        "AppDslVersionORM",
        back_populates="app",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    site = relationship(
        "DifySiteORM",
        back_populates="app",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("instance_id", "dify_app_id", name="uq_app_instance_dify_app"),
    )

    def __str__(self) -> str:
        return self.name


class AppDslVersionORM(TimestampMixin, Base):
    """Modèle ORM pour les versions DSL d'une application."""

    __tablename__ = "app_dsl_versions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    app_id = Column(Integer, ForeignKey("dify_apps.id", ondelete="CASCADE"), nullable=False)
    version = Column(Integer, nullable=False)
    dsl_content = Column(JSON, nullable=False, default=dict)
    dsl_raw_content = Column(Text, nullable=True)
    dsl_hash = Column(String(64), nullable=False)
    sync_time = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    app = relationship("DifyAppORM", back_populates="versions")

    __table_args__ = (
        UniqueConstraint("app_id", "version", name="uq_app_dsl_version"),
        Index("ix_app_dsl_versions_app_hash", "app_id", "dsl_hash"),
        Index("ix_app_dsl_versions_sync_time", "sync_time"),
    )


class DifySiteORM(TimestampMixin, Base):
    """Site web public d'une application (bloc `site` du détail distant)."""

    __tablename__ = "dify_sites"

    id = Column(Integer, primary_key=True, autoincrement=True)
    app_id = Column(
        Integer, ForeignKey("dify_apps.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    site_code = Column(String(100), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    site_url = Column(String(500), nullable=True)
    is_enabled = Column(Boolean, nullable=False, default=False)
    default_language = Column(String(50), nullable=True)
    theme = Column(String(100), nullable=True)
    copyright = Column(String(200), nullable=True)
    privacy_policy = Column(Text, nullable=True)
    disclaimer = Column(Text, nullable=True)
    custom_domain = Column(JSON, nullable=True)
    custom_config = Column(JSON, nullable=True)
    publish_time = Column(DateTime(timezone=True), nullable=True)
    last_sync_at = Column(DateTime(timezone=True), nullable=True)

    app = relationship("DifyAppORM", back_populates="site")

    def __str__(self) -> str:
        return self.title
