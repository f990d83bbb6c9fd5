"""
Conteneur d'injection de dépendances et configuration application.

Instancie les composants centraux (settings, moteur SQL, factory de sessions, passerelle Dify) et
expose un singleton `container` utilisé par l'API et les scripts.
"""

from sqlalchemy.orm import sessionmaker

from dify_console.core.settings import Settings, get_settings
from dify_console.infra.dify_client import DifyConsoleClient
from dify_console.infra.repo.db import create_schema, get_engine, get_session_factory


class Container:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.engine = get_engine(self.settings.DATABASE_URL)
        # Sans URL explicite (base mémoire) ou en dev, le schéma est créé à la volée;
        # ailleurs il est géré par Alembic.
        if not self.settings.DATABASE_URL or self.settings.APP_ENV in ("dev", "test"):
            create_schema(self.engine)
        self.session_factory: sessionmaker = get_session_factory(self.engine)
        self.gateway = DifyConsoleClient(
            timeout=self.settings.DIFY_HTTP_TIMEOUT,
            include_secret=self.settings.DIFY_EXPORT_INCLUDE_SECRET,
            default_token_ttl=self.settings.DIFY_TOKEN_DEFAULT_TTL_SECONDS,
        )

    @property
    def storage_backend(self) -> str:
        return self.engine.dialect.name


container = Container()
