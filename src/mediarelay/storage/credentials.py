"""Access token broker for the storage provider."""

import logging
import time
from typing import Callable
from urllib.parse import urlencode

import httpx

from mediarelay.core.config import Settings, settings as default_settings
from mediarelay.core.exceptions import AuthError, ConfigError

logger = logging.getLogger(__name__)


class CredentialBroker:
    """Exchanges the long-lived refresh credential for a short-lived access token.

    Every call performs one round trip to the token endpoint unless
    ``TOKEN_CACHE_ENABLED`` is set, in which case a token is reused until
    ``expires_in`` minus a safety margin has elapsed.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._client = client
        self._config = config or default_settings
        self._clock = clock
        self._cached_token: str | None = None
        self._cached_until: float = 0.0

    def _check_config(self) -> None:
        missing = [
            name
            for name in ("AZURE_CLIENT_ID", "AZURE_CLIENT_SECRET", "AZURE_REFRESH_TOKEN")
            if not getattr(self._config, name)
        ]
        if missing:
            raise ConfigError(f"Missing storage credentials: {', '.join(missing)}")

    async def get_access_token(self) -> str:
        """Return a valid access token for the storage provider.

        Raises:
            ConfigError: If the refresh credential is not configured
            AuthError: If the token endpoint rejects the exchange
        """
        if self._config.TOKEN_CACHE_ENABLED and self._cached_token:
            if self._clock() < self._cached_until:
                return self._cached_token
            self._cached_token = None

        self._check_config()

        try:
            response = await self._client.post(
                self._config.token_endpoint,
                data={
                    "client_id": self._config.AZURE_CLIENT_ID,
                    "client_secret": self._config.AZURE_CLIENT_SECRET,
                    "refresh_token": self._config.AZURE_REFRESH_TOKEN,
                    "grant_type": "refresh_token",
                    "scope": self._config.GRAPH_SCOPE,
                },
            )
        except httpx.HTTPError as e:
            logger.error("Token endpoint unreachable", extra={"error": str(e)})
            raise AuthError("Failed to refresh access token") from e

        if not response.is_success:
            logger.error(
                "Token refresh failed",
                extra={"status_code": response.status_code, "body": response.text[:500]},
            )
            raise AuthError("Failed to refresh access token")

        try:
            data = response.json()
            token = data.get("access_token")
        except (ValueError, AttributeError) as e:
            logger.error("Token endpoint returned an invalid body", extra={"body": response.text[:200]})
            raise AuthError("Failed to refresh access token") from e
        if not token:
            raise AuthError("Token endpoint returned no access_token")

        if self._config.TOKEN_CACHE_ENABLED:
            lifetime = int(data.get("expires_in", 0)) - self._config.TOKEN_EXPIRY_MARGIN_SECONDS
            if lifetime > 0:
                self._cached_token = token
                self._cached_until = self._clock() + lifetime

        return token


def build_authorize_url(redirect_uri: str, config: Settings | None = None) -> str:
    """Build the consent URL an administrator opens to grant offline access."""
    config = config or default_settings
    params = {
        "client_id": config.AZURE_CLIENT_ID,
        "response_type": "code",
        "redirect_uri": redirect_uri,
        "scope": config.GRAPH_SCOPE,
        "response_mode": "query",
    }
    return f"{config.authorize_endpoint}?{urlencode(params)}"


async def exchange_code(
    client: httpx.AsyncClient,
    code: str,
    redirect_uri: str,
    config: Settings | None = None,
) -> dict:
    """Exchange an authorization code for tokens, including the refresh token.

    Raises:
        AuthError: If the endpoint answers with an error payload
    """
    config = config or default_settings
    response = await client.post(
        config.token_endpoint,
        data={
            "client_id": config.AZURE_CLIENT_ID,
            "client_secret": config.AZURE_CLIENT_SECRET,
            "code": code,
            "redirect_uri": redirect_uri,
            "grant_type": "authorization_code",
            "scope": config.GRAPH_SCOPE,
        },
    )
    try:
        payload = response.json()
    except ValueError as e:
        raise AuthError("Invalid response from token endpoint") from e

    if "error" in payload or not response.is_success:
        raise AuthError(payload.get("error_description") or payload.get("error") or "Code exchange failed")
    return payload
