"""Configuration de test pour pytest avec gestion des chemins et fixtures de base.

Ajoute la racine du projet au sys.path et fournit une session SQLite en mémoire avec une instance,
un compte connecté et une application prêts à l'emploi.
"""

import os
import sys
from datetime import timedelta

import pytest

# Ensure project root is on sys.path so that
# imports like `from dify_console...` resolve.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from dify_console.core.clock import utcnow  # noqa: E402
from dify_console.infra.repo.db import create_schema, get_engine, get_session_factory  # noqa: E402
from dify_console.infra.repo.models import (  # noqa: E402
    DifyAccountORM,
    DifyAppORM,
    DifyInstanceORM,
)


@pytest.fixture()
def session_factory():
    """Factory de sessions sur une base SQLite mémoire neuve."""
    engine = get_engine("sqlite+pysqlite:///:memory:")
    create_schema(engine)
    yield get_session_factory(engine)
    engine.dispose()


@pytest.fixture()
def session(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture()
def instance(session) -> DifyInstanceORM:
    row = DifyInstanceORM(name="prod", base_url="https://dify.example.com", is_enabled=True)
    session.add(row)
    session.flush()
    return row


@pytest.fixture()
def account(session, instance) -> DifyAccountORM:
    row = DifyAccountORM(
        instance_id=instance.id,
        email="ops@example.com",
        password="s3cret",
        access_token="tok-123",
        token_expires_at=utcnow() + timedelta(hours=1),
        is_enabled=True,
    )
    session.add(row)
    session.flush()
    return row


@pytest.fixture()
def app(session, instance, account) -> DifyAppORM:
    row = DifyAppORM(
        instance_id=instance.id,
        account_id=account.id,
        dify_app_id="app-uuid-1",
        name="Support bot",
        kind="chat_assistant",
        mode="chat",
        kind_config={},
    )
    session.add(row)
    session.flush()
    return row
