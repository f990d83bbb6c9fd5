"""Tests de la connexion des comptes (AccountService)."""

from __future__ import annotations

import pytest

from dify_console.domain.errors import NotFoundError
from dify_console.domain.results import AuthenticationResult
from dify_console.services.account_service import AccountService
from tests.fakes import FakeGateway


def test_login_stores_token_and_expiry(session, account, instance) -> None:
    gw = FakeGateway()
    result = AccountService(session, gw).login(account.id)
    assert result.success
    assert account.access_token == "fresh-token"
    assert account.token_expires_at == gw.auth_result.expires_at
    assert account.last_login_at is not None
    assert not account.is_token_expired()
    assert gw.calls == [("authenticate", instance.base_url, account.email)]


def test_failed_login_leaves_account_untouched(session, account) -> None:
    gw = FakeGateway()
    gw.auth_result = AuthenticationResult(success=False, error="Échec de connexion Dify")
    result = AccountService(session, gw).login(account.id)
    assert not result.success and result.error == "Échec de connexion Dify"
    assert account.access_token == "tok-123"
    assert account.last_login_at is None


def test_disabled_account_is_not_logged_in(session, account) -> None:
    account.is_enabled = False
    gw = FakeGateway()
    result = AccountService(session, gw).login(account.id)
    assert not result.success and gw.calls == []


def test_disabled_instance_is_not_logged_in(session, account, instance) -> None:
    instance.is_enabled = False
    gw = FakeGateway()
    result = AccountService(session, gw).login(account.id)
    assert result.error == "Instance désactivée" and gw.calls == []


def test_unknown_account(session) -> None:
    with pytest.raises(NotFoundError):
        AccountService(session, FakeGateway()).login(999)


def test_token_expiry_rules(account) -> None:
    account.access_token = None
    assert account.is_token_expired()
    account.access_token = "t"
    account.token_expires_at = None
    assert account.is_token_expired()
