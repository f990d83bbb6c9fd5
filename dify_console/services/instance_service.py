# ============================================================
# Module : dify_console/services/instance_service.py
# Objet  : Test de connexion aux instances Dify déclarées.
# Contexte : un test = login du premier compte actif de l'instance via la passerelle;
#            le token obtenu n'est pas mémorisé (voir AccountService.login).
# ============================================================
"""Tests de connexion des instances Dify."""

from __future__ import annotations

import structlog
from sqlalchemy.orm import Session

from dify_console.core.clock import utcnow
from dify_console.domain.results import ConnectionTestResult
from dify_console.infra.repo.console_repo import AccountRepo, InstanceRepo
from dify_console.infra.repo.models import DifyInstanceORM

log = structlog.get_logger(__name__)


class InstanceService:
    """Vérifie qu'une instance répond et accepte les identifiants d'un de ses comptes."""

    def __init__(self, session: Session, gateway) -> None:
        self._session = session
        self._gateway = gateway
        self._instances = InstanceRepo(session)
        self._accounts = AccountRepo(session)

    def test_connection(self, instance_id: int) -> ConnectionTestResult:
        """Teste l'instance `instance_id` (NotFoundError si inconnue)."""
        return self._test(self._instances.require(instance_id))

    def test_all(self) -> list[ConnectionTestResult]:
        """Teste toutes les instances déclarées, actives ou non."""
        results = [self._test(instance) for instance in self._instances.list()]
        log.info(
            "instance_connection_tests_done",
            total=len(results),
            success=sum(1 for r in results if r.success),
        )
        return results

    def _test(self, instance: DifyInstanceORM) -> ConnectionTestResult:
        accounts = self._accounts.list(instance_id=instance.id, enabled_only=True)
        if not accounts:
            return self._result(instance, error="Aucun compte actif pour tester la connexion")

        account = accounts[0]
        auth = self._gateway.authenticate(instance.base_url, account.email, account.password)
        if not auth.success:
            log.warning(
                "instance_connection_failed",
                instance_id=instance.id,
                base_url=instance.base_url,
                error=auth.error,
            )
            return self._result(instance, account_id=account.id, error=auth.error or "Échec")
        log.info("instance_connection_ok", instance_id=instance.id, base_url=instance.base_url)
        return self._result(instance, account_id=account.id)

    @staticmethod
    def _result(
        instance: DifyInstanceORM, account_id: int | None = None, error: str | None = None
    ) -> ConnectionTestResult:
        return ConnectionTestResult(
            success=error is None,
            message="Connexion établie" if error is None else f"Connexion impossible: {error}",
            instance_id=instance.id,
            instance_name=instance.name,
            base_url=instance.base_url,
            tested_at=utcnow(),
            account_id=account_id,
            error=error,
        )
