"""Connecte un compte Dify et enregistre son token de session (`dify-login --account 3`)."""

from __future__ import annotations

import argparse

from dify_console.core.container import container
from dify_console.core.logging import setup_logging
from dify_console.domain.errors import NotFoundError
from dify_console.infra.repo.db import session_scope
from dify_console.services.account_service import AccountService


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="dify-login")
    parser.add_argument("-a", "--account", type=int, required=True, help="Identifiant du compte")
    args = parser.parse_args(argv)
    setup_logging(container.settings.LOG_LEVEL)

    try:
        with session_scope(container.session_factory) as session:
            result = AccountService(session, container.gateway).login(args.account)
    except NotFoundError as err:
        print(f"erreur: {err}")
        return 1
    if not result.success:
        print(f"échec de connexion: {result.error}")
        return 1
    print(f"connecté, token valide jusqu'au {result.expires_at.isoformat()}")
    return 0


if __name__ == "__main__":  # pragma: no cover - script entry
    raise SystemExit(main())
