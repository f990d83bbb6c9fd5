# ============================================================
# Module : dify_console/infra/dify_client.py
# Objet  : Passerelle HTTP vers la Dify Console API.
# Contexte : Connexion, listage des applications, export DSL.
# Invariants :
#  - Aucune exception ne sort d'une opération publique: tout échec
#    devient un résultat success=False avec un message lisible.
#  - Aucun état local hormis le client httpx.
# ============================================================
"""Client de la Dify Console API.

Ce module encapsule les appels authentifiés vers une instance Dify (identifiée par son URL de base)
et normalise réponses et erreurs en objets résultat.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from typing import Any

import httpx
import jwt
import structlog
import yaml

from dify_console.app.metrics import DIFY_API_REQUESTS
from dify_console.core.clock import from_unix, utcnow
from dify_console.core.http_constants import (
    DIFY_APPS_PATH,
    DIFY_LOGIN_PATH,
    HTTP_FORBIDDEN,
    HTTP_OK,
    HTTP_REDIRECT_MIN,
    HTTP_SERVER_ERROR_MAX,
    HTTP_SERVER_ERROR_MIN,
    HTTP_TOO_MANY_REQUESTS,
    HTTP_UNAUTHORIZED,
)
from dify_console.domain.errors import (
    DifyApiError,
    DifyAuthenticationError,
    DifyGenericError,
    DifyInstanceUnavailableError,
    DifyRateLimitError,
)
from dify_console.domain.results import (
    AppDetailResult,
    AppDslExportResult,
    AppListQuery,
    AppListResult,
    AuthenticationResult,
)

log = structlog.get_logger(__name__)


def extract_error_message(body: str) -> str:
    """Extrait un message d'erreur lisible d'un corps de réponse (JSON ou texte)."""
    try:
        data = json.loads(body) if body else None
    except ValueError:
        return body or "Erreur inconnue"
    if isinstance(data, dict):
        for key in ("message", "error", "detail"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    return "Erreur inconnue"


def _retry_after(response: httpx.Response) -> int | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def token_expiry_from_jwt(token: str) -> datetime | None:
    """Lit l'échéance (`exp`) d'un token JWT sans vérifier sa signature."""
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return None
    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, int):
        return None
    return from_unix(exp)


class DifyConsoleClient:
    """Passerelle vers la Dify Console API.

    - authenticate: connexion e-mail/mot de passe, retourne token + échéance.
    - list_apps: page d'applications.
    - get_app_detail: détail d'une application.
    - export_dsl: DSL d'une application (document structuré + YAML brut).
    """

    def __init__(
        self,
        timeout: float = 30.0,
        include_secret: bool = False,
        default_token_ttl: int = 86400,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialise la passerelle.

        Args:
            timeout: délai maximal (secondes) de chaque appel HTTP.
            include_secret: demande l'export des secrets dans le DSL.
            default_token_ttl: durée de vie supposée d'un token sans échéance connue.
            http_client: client httpx à utiliser (tests: transport simulé).
        """
        self._http = http_client or httpx.Client(timeout=timeout)
        self._timeout = timeout
        self._include_secret = include_secret
        self._default_token_ttl = default_token_ttl

    def close(self) -> None:
        self._http.close()

    # ------------------------------------------------------------------
    # Opérations publiques
    # ------------------------------------------------------------------

    def authenticate(self, base_url: str, email: str, password: str) -> AuthenticationResult:
        """Se connecte à l'instance et retourne le token de session et son échéance."""
        base = base_url.rstrip("/")
        try:
            response = self._request(
                "POST",
                base,
                DIFY_LOGIN_PATH,
                json={"email": email, "password": password},
                headers={"Accept": "application/json"},
            )
            self._raise_for_status(response, base, login=True)
            data = self._json_mapping(response)
            token = self._extract_access_token(data)
            expires_at = self._token_expiry(token, data)
        except DifyApiError as exc:
            return self._failed("login", AuthenticationResult, exc, base_url=base, email=email)
        except Exception as exc:
            return self._unexpected("login", AuthenticationResult, exc, base_url=base, email=email)
        DIFY_API_REQUESTS.labels("login", "success").inc()
        log.info("dify_login_success", base_url=base, email=email)
        return AuthenticationResult(success=True, token=token, expires_at=expires_at)

    def list_apps(
        self, base_url: str, token: str, query: AppListQuery | None = None
    ) -> AppListResult:
        """Liste une page d'applications de l'instance."""
        base = base_url.rstrip("/")
        query = query or AppListQuery()
        try:
            response = self._request(
                "GET",
                base,
                DIFY_APPS_PATH,
                params=query.to_params(),
                headers=self._auth_headers(token),
            )
            self._raise_for_status(response, base)
            data = self._json_mapping(response)
        except DifyApiError as exc:
            return self._failed("list_apps", AppListResult, exc, base_url=base)
        except Exception as exc:
            return self._unexpected("list_apps", AppListResult, exc, base_url=base)

        raw_apps = data.get("data")
        apps = [a for a in raw_apps if isinstance(a, dict)] if isinstance(raw_apps, list) else []
        total = self._int_value(data, "total", len(apps))
        page = self._int_value(data, "page", query.page)
        has_more = data.get("has_more")
        if not isinstance(has_more, bool):
            has_more = page * query.limit < total
        DIFY_API_REQUESTS.labels("list_apps", "success").inc()
        return AppListResult(
            success=True,
            apps=apps,
            total=total,
            page=page,
            limit=query.limit,
            has_more=has_more,
        )

    def get_app_detail(self, base_url: str, token: str, app_id: str) -> AppDetailResult:
        """Retourne le détail d'une application."""
        base = base_url.rstrip("/")
        try:
            response = self._request(
                "GET", base, f"{DIFY_APPS_PATH}/{app_id}", headers=self._auth_headers(token)
            )
            self._raise_for_status(response, base)
            data = self._json_mapping(response)
        except DifyApiError as exc:
            return self._failed("app_detail", AppDetailResult, exc, base_url=base, app_id=app_id)
        except Exception as exc:
            return self._unexpected(
                "app_detail", AppDetailResult, exc, base_url=base, app_id=app_id
            )
        DIFY_API_REQUESTS.labels("app_detail", "success").inc()
        return AppDetailResult(success=True, app_data=data or None)

    def export_dsl(self, base_url: str, token: str, app_id: str) -> AppDslExportResult:
        """Exporte le DSL d'une application.

        La réponse porte le DSL sous `data`: soit un texte YAML (conservé comme forme brute), soit
        un mapping (la forme brute est alors son rendu YAML).
        """
        base = base_url.rstrip("/")
        try:
            response = self._request(
                "GET",
                base,
                f"{DIFY_APPS_PATH}/{app_id}/export",
                params={"include_secret": "true" if self._include_secret else "false"},
                headers=self._auth_headers(token),
            )
            self._raise_for_status(response, base)
            data = self._json_mapping(response)
            dsl_content, raw_content = self._parse_dsl_payload(data.get("data"))
        except DifyApiError as exc:
            return self._failed("export_dsl", AppDslExportResult, exc, base_url=base, app_id=app_id)
        except Exception as exc:
            return self._unexpected(
                "export_dsl", AppDslExportResult, exc, base_url=base, app_id=app_id
            )
        DIFY_API_REQUESTS.labels("export_dsl", "success").inc()
        log.debug("dsl_export_success", base_url=base, app_id=app_id)
        return AppDslExportResult(success=True, dsl_content=dsl_content, raw_content=raw_content)

    # ------------------------------------------------------------------
    # Transport et normalisation
    # ------------------------------------------------------------------

    @staticmethod
    def _auth_headers(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}", "Accept": "application/json"}

    def _request(self, method: str, base: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._http.request(method, f"{base}{path}", timeout=self._timeout, **kwargs)
        except httpx.TimeoutException as exc:
            raise DifyInstanceUnavailableError.connection_failed(base, "délai dépassé") from exc
        except httpx.TransportError as exc:
            raise DifyInstanceUnavailableError.connection_failed(base, str(exc)) from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response, base: str, login: bool = False) -> None:
        status = response.status_code
        if HTTP_OK <= status < HTTP_REDIRECT_MIN:
            return
        body = response.text
        if status == HTTP_UNAUTHORIZED:
            if login:
                raise DifyAuthenticationError.login_failed(body)
            raise DifyAuthenticationError.token_invalid(body)
        if status == HTTP_FORBIDDEN:
            if login:
                raise DifyAuthenticationError.login_failed(body)
            raise DifyAuthenticationError.insufficient_permissions(body)
        if status == HTTP_TOO_MANY_REQUESTS:
            raise DifyRateLimitError(retry_after=_retry_after(response), response_body=body)
        if HTTP_SERVER_ERROR_MIN <= status <= HTTP_SERVER_ERROR_MAX:
            raise DifyInstanceUnavailableError.service_unavailable(base, status, body)
        message = extract_error_message(body)
        raise DifyGenericError(f"HTTP {status}: {message}", status, body)

    @staticmethod
    def _json_mapping(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise DifyGenericError(
                f"Réponse illisible: {exc}", response.status_code, response.text
            ) from exc
        if not isinstance(data, dict):
            raise DifyGenericError(
                "Format de réponse inattendu", response.status_code, response.text
            )
        return data

    @staticmethod
    def _extract_access_token(data: dict[str, Any]) -> str:
        token = data.get("access_token")
        nested = data.get("data")
        if token is None and isinstance(nested, dict):
            token = nested.get("access_token")
        if not isinstance(token, str) or not token:
            raise DifyAuthenticationError.login_failed("token d'accès absent de la réponse")
        return token

    def _token_expiry(self, token: str, data: dict[str, Any]) -> datetime:
        expires_at = token_expiry_from_jwt(token)
        if expires_at is not None:
            return expires_at
        expires_in = data.get("expires_in")
        nested = data.get("data")
        if expires_in is None and isinstance(nested, dict):
            expires_in = nested.get("expires_in")
        if isinstance(expires_in, int) and not isinstance(expires_in, bool):
            return utcnow() + timedelta(seconds=expires_in)
        return utcnow() + timedelta(seconds=self._default_token_ttl)

    @staticmethod
    def _parse_dsl_payload(payload: Any) -> tuple[dict[str, Any], str]:
        if payload is None:
            raise DifyGenericError("DSL absent de la réponse")
        if isinstance(payload, str):
            try:
                parsed = yaml.safe_load(payload)
            except yaml.YAMLError as exc:
                raise DifyGenericError(f"DSL YAML illisible: {exc}") from exc
            if not isinstance(parsed, dict):
                raise DifyGenericError("Le DSL YAML n'est pas un mapping")
            return parsed, payload
        if isinstance(payload, dict):
            raw = yaml.safe_dump(payload, allow_unicode=True, sort_keys=False)
            return payload, raw
        raise DifyGenericError("Format de DSL invalide")

    @staticmethod
    def _int_value(data: dict[str, Any], key: str, default: int) -> int:
        value = data.get(key, default)
        if isinstance(value, bool):
            return default
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    @staticmethod
    def _failed(operation: str, result_cls: type, exc: DifyApiError, **context: Any):
        DIFY_API_REQUESTS.labels(operation, "failure").inc()
        log.warning(
            f"dify_{operation}_failed",
            error=exc.message,
            status_code=exc.status_code,
            error_type=type(exc).__name__,
            **context,
        )
        return result_cls(success=False, error=exc.message)

    @staticmethod
    def _unexpected(operation: str, result_cls: type, exc: Exception, **context: Any):
        DIFY_API_REQUESTS.labels(operation, "failure").inc()
        log.error(f"dify_{operation}_error", error=str(exc), **context, exc_info=True)
        return result_cls(success=False, error=f"Erreur inattendue: {exc}")
