"""Erreurs du domaine Dify.

Taxonomie des échecs d'appel à la Dify Console API. Ces exceptions restent internes à la
passerelle (`infra.dify_client`) qui les convertit en résultats `success=False`.
"""

from __future__ import annotations


class DifyApiError(Exception):
    """Erreur de base d'un appel à la Dify Console API."""

    def __init__(
        self, message: str, status_code: int = 0, response_body: str | None = None
    ) -> None:
        """Initialise l'erreur avec le code HTTP et le corps de réponse éventuels."""
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_body = response_body


class DifyAuthenticationError(DifyApiError):
    """Échec d'authentification: identifiants refusés, token expiré/invalide, droits."""

    @classmethod
    def login_failed(cls, response_body: str = "") -> DifyAuthenticationError:
        return cls("Échec de connexion Dify", 401, response_body)

    @classmethod
    def token_invalid(cls, response_body: str = "") -> DifyAuthenticationError:
        return cls("Token Dify invalide ou expiré", 401, response_body)

    @classmethod
    def insufficient_permissions(cls, response_body: str = "") -> DifyAuthenticationError:
        return cls("Permissions insuffisantes", 403, response_body)


class DifyRateLimitError(DifyApiError):
    """Requête refusée par limitation de débit (HTTP 429)."""

    def __init__(
        self,
        message: str = "Trop de requêtes, réessayer plus tard",
        retry_after: int | None = None,
        response_body: str | None = None,
    ) -> None:
        """Initialise l'erreur avec le délai `Retry-After` éventuel (secondes)."""
        super().__init__(message, 429, response_body)
        self.retry_after = retry_after


class DifyInstanceUnavailableError(DifyApiError):
    """Instance injoignable, en erreur serveur ou mal configurée."""

    def __init__(
        self,
        instance_url: str,
        message: str,
        reason_code: str,
        status_code: int = 503,
        response_body: str | None = None,
    ) -> None:
        """Initialise l'erreur avec l'URL de l'instance et un code de raison."""
        super().__init__(message, status_code, response_body)
        self.instance_url = instance_url
        self.reason_code = reason_code

    @classmethod
    def connection_failed(cls, instance_url: str, detail: str = "") -> DifyInstanceUnavailableError:
        message = f"Impossible de joindre l'instance Dify: {instance_url}"
        if detail:
            message = f"{message} ({detail})"
        return cls(instance_url, message, "CONNECTION_FAILED", 0)

    @classmethod
    def service_unavailable(
        cls, instance_url: str, status_code: int, response_body: str = ""
    ) -> DifyInstanceUnavailableError:
        return cls(
            instance_url,
            f"Service Dify indisponible (HTTP {status_code}): {instance_url}",
            "SERVICE_UNAVAILABLE",
            status_code,
            response_body,
        )


class DifyGenericError(DifyApiError):
    """Erreur non classée (4xx divers, réponse illisible)."""


class NotFoundError(LookupError):
    """Ressource locale introuvable (instance, compte, application, version)."""
