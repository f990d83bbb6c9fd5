# ============================================================
# Tests : tests/test_dsl_version_repo.py
# Objet  : Magasin de versions DSL via SQLAlchemy (sqlite mémoire).
# ============================================================
"""
Tests pour le repository des versions DSL.

Numérotation, recherche par empreinte, historique, rétention et contrainte d'unicité.
"""

from __future__ import annotations

from datetime import timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from dify_console.core.clock import utcnow
from dify_console.domain.fingerprint import fingerprint
from dify_console.infra.repo.dsl_version_repo import DslVersionRepo
from dify_console.infra.repo.models import AppDslVersionORM, DifyAppORM


def _append(repo: DslVersionRepo, app_id: int, content: dict):
    return repo.append(app_id, content, fingerprint(content), raw_content=None)


def test_append_numbers_from_one(session, app) -> None:
    repo = DslVersionRepo(session)
    assert repo.latest(app.id) is None
    v1 = _append(repo, app.id, {"a": 1})
    v2 = _append(repo, app.id, {"a": 2})
    assert (v1.version, v2.version) == (1, 2)
    latest = repo.latest(app.id)
    assert latest is not None and latest.version == 2
    assert latest.dsl_content == {"a": 2}
    assert latest.sync_time.tzinfo is not None


def test_numbering_is_per_application(session, app, account, instance) -> None:
    other = DifyAppORM(
        instance_id=instance.id,
        account_id=account.id,
        dify_app_id="app-uuid-2",
        name="Other",
        kind="workflow",
        mode="workflow",
        kind_config={},
    )
    session.add(other)
    session.flush()
    repo = DslVersionRepo(session)
    _append(repo, app.id, {"a": 1})
    _append(repo, app.id, {"a": 2})
    assert _append(repo, other.id, {"a": 1}).version == 1


def test_by_hash_and_by_version_number(session, app) -> None:
    repo = DslVersionRepo(session)
    _append(repo, app.id, {"a": 1})
    _append(repo, app.id, {"a": 2})
    found = repo.by_hash(app.id, fingerprint({"a": 1}))
    assert found is not None and found.version == 1
    assert repo.by_hash(app.id, "0" * 64) is None
    assert repo.by_version_number(app.id, 2).dsl_content == {"a": 2}
    assert repo.by_version_number(app.id, 9) is None


def test_history_is_descending(session, app) -> None:
    repo = DslVersionRepo(session)
    for i in range(4):
        _append(repo, app.id, {"i": i})
    assert [v.version for v in repo.history(app.id)] == [4, 3, 2, 1]
    assert repo.count_for(app.id) == 4


def test_version_numbers_survive_pruning(session, app) -> None:
    """Les numéros ne sont jamais réutilisés après une purge."""
    repo = DslVersionRepo(session)
    for i in range(3):
        _append(repo, app.id, {"i": i})
    assert repo.prune_oldest(app.id, 1) == 2
    assert _append(repo, app.id, {"i": 99}).version == 4


def test_prune_oldest_keeps_most_recent(session, app) -> None:
    repo = DslVersionRepo(session)
    for i in range(5):
        _append(repo, app.id, {"i": i})
    deleted = repo.prune_oldest(app.id, 2)
    assert deleted == 3
    assert [v.version for v in repo.history(app.id)] == [5, 4]
    assert repo.prune_oldest(app.id, 2) == 0
    assert repo.prune_oldest(app.id, 10) == 0


def test_prune_with_keep_zero_empties_history(session, app) -> None:
    repo = DslVersionRepo(session)
    _append(repo, app.id, {"a": 1})
    assert repo.prune_oldest(app.id, 0) == 1
    assert repo.latest(app.id) is None


def test_prune_rejects_negative_keep(session, app) -> None:
    with pytest.raises(ValueError):
        DslVersionRepo(session).prune_oldest(app.id, -1)


def test_since_filters_on_sync_time(session, app) -> None:
    repo = DslVersionRepo(session)
    before = utcnow() - timedelta(seconds=1)
    _append(repo, app.id, {"a": 1})
    assert [v.version for v in repo.since(before)] == [1]
    assert repo.since(utcnow() + timedelta(hours=1)) == []


def test_since_converts_aware_bound_to_utc(session, app) -> None:
    """Une borne exprimée dans un autre fuseau est comparée en UTC."""
    repo = DslVersionRepo(session)
    plus_five = timezone(timedelta(hours=5))
    minus_five = timezone(timedelta(hours=-5))
    before = (utcnow() - timedelta(minutes=1)).astimezone(plus_five)
    _append(repo, app.id, {"a": 1})
    assert [v.version for v in repo.since(before)] == [1]
    after = (utcnow() + timedelta(minutes=30)).astimezone(minus_five)
    assert repo.since(after) == []


def test_unique_app_version_constraint(session, app) -> None:
    """Deux versions de même numéro pour une application sont refusées."""
    _append(DslVersionRepo(session), app.id, {"a": 1})
    now = utcnow()
    session.add(
        AppDslVersionORM(
            app_id=app.id,
            version=1,
            dsl_content={"a": 2},
            dsl_hash=fingerprint({"a": 2}),
            sync_time=now,
        )
    )
    with pytest.raises(IntegrityError):
        session.flush()


def test_versions_are_deleted_with_their_application(session, app) -> None:
    repo = DslVersionRepo(session)
    _append(repo, app.id, {"a": 1})
    app_id = app.id
    session.delete(app)
    session.flush()
    assert repo.count_for(app_id) == 0
