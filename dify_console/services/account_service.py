"""Connexion des comptes Dify et mémorisation de leur token de session."""

from __future__ import annotations

import structlog
from sqlalchemy.orm import Session

from dify_console.core.clock import utcnow
from dify_console.domain.results import AuthenticationResult
from dify_console.infra.repo.console_repo import AccountRepo

log = structlog.get_logger(__name__)


class AccountService:
    """Authentifie un compte auprès de son instance.

    En cas de succès, le token, son échéance et la date de connexion sont enregistrés sur le
    compte. En cas d'échec, le compte n'est pas modifié.
    """

    def __init__(self, session: Session, gateway) -> None:
        self._session = session
        self._gateway = gateway
        self._accounts = AccountRepo(session)

    def login(self, account_id: int) -> AuthenticationResult:
        """Connecte le compte `account_id` (NotFoundError si inconnu)."""
        account = self._accounts.require(account_id)
        instance = account.instance
        if not account.is_enabled:
            return AuthenticationResult(success=False, error="Compte désactivé")
        if instance is None or not instance.is_enabled:
            return AuthenticationResult(success=False, error="Instance désactivée")

        result = self._gateway.authenticate(instance.base_url, account.email, account.password)
        if not result.success:
            log.warning("account_login_failed", account_id=account.id, error=result.error)
            return result

        account.access_token = result.token
        account.token_expires_at = result.expires_at
        account.last_login_at = utcnow()
        account.touch()
        self._session.flush()
        log.info("account_login_success", account_id=account.id, expires_at=result.expires_at)
        return result
