"""
OAuth token manager for Microsoft Graph.

Acquires app-only tokens with the client-credentials grant and caches them
in memory per (tenant, client) pair. Tokens are reused until 5 minutes
before expiration.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import httpx
from azure.core.credentials import AccessToken, TokenCredential

from ..config import DEFAULT_AUTHORITY_HOST, DEFAULT_HTTP_TIMEOUT
from ..exceptions import AuthenticationError, ConfigurationError


log = logging.getLogger("graphmailkit.token_manager")

GRAPH_SCOPE = "https://graph.microsoft.com/.default"
REFRESH_BUFFER_SECONDS = 300
DEFAULT_EXPIRES_IN = 3600


@dataclass
class CachedToken:
    access_token: str
    expires_at: float


class TokenManager:
    """
    Client-credentials token cache.

    The lock only covers cache reads and writes. Two threads that both find a
    stale entry will both call the token endpoint; the last one to finish wins
    the cache slot.
    """

    def __init__(
        self,
        http_client: Optional[httpx.Client] = None,
        authority_host: str = DEFAULT_AUTHORITY_HOST,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize token manager.

        Args:
            http_client: Client used for token requests (created lazily if omitted)
            authority_host: Identity provider host, e.g. login.microsoftonline.com
            timeout: Connect/read timeout for the token request in seconds
            clock: Returns the current time as a Unix timestamp
        """
        self._http_client = http_client
        self.authority_host = authority_host
        self.timeout = timeout
        self._clock = clock
        self._cache: Dict[Tuple[str, str], CachedToken] = {}
        self._lock = threading.Lock()

    def token_endpoint(self, tenant_id: str) -> str:
        return f"https://{self.authority_host}/{tenant_id}/oauth2/v2.0/token"

    def get_access_token(self, client_id: str, tenant_id: str, client_secret: str) -> str:
        """
        Return a bearer token for the app registration.

        Args:
            client_id: Application (client) ID
            tenant_id: Directory (tenant) ID
            client_secret: Client secret value

        Returns:
            Access token string

        Raises:
            ConfigurationError: If any credential is empty
            AuthenticationError: If the token endpoint rejects the request
        """
        return self.get_token_entry(client_id, tenant_id, client_secret).access_token

    def get_token_entry(self, client_id: str, tenant_id: str, client_secret: str) -> CachedToken:
        if not client_id or not tenant_id or not client_secret:
            raise ConfigurationError("client_id, tenant_id and client_secret are required")

        key = (tenant_id, client_id)
        with self._lock:
            cached = self._cache.get(key)
            if cached and cached.expires_at > self._clock() + REFRESH_BUFFER_SECONDS:
                return cached

        token = self._request_token(client_id, tenant_id, client_secret)

        with self._lock:
            self._cache[key] = token
        return token

    def _request_token(self, client_id: str, tenant_id: str, client_secret: str) -> CachedToken:
        url = self.token_endpoint(tenant_id)
        data = {
            "client_id": client_id,
            "client_secret": client_secret,
            "scope": GRAPH_SCOPE,
            "grant_type": "client_credentials",
        }
        log.info("Requesting Graph token for client %s in tenant %s", client_id, tenant_id)

        try:
            if self._http_client is not None:
                response = self._http_client.post(url, data=data)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(url, data=data)
        except httpx.RequestError as e:
            raise AuthenticationError(f"Failed to reach token endpoint: {e}")

        if not response.is_success:
            raise AuthenticationError(
                f"Token request failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            token_data = response.json()
        except ValueError:
            raise AuthenticationError(
                "Token endpoint returned a non-JSON body",
                status_code=response.status_code,
                body=response.text,
            )

        access_token = token_data.get("access_token")
        if not access_token:
            raise AuthenticationError(
                "Token endpoint response has no access_token",
                status_code=response.status_code,
                body=response.text,
            )

        expires_in = token_data.get("expires_in", DEFAULT_EXPIRES_IN)
        try:
            expires_in = int(expires_in)
        except (TypeError, ValueError):
            expires_in = DEFAULT_EXPIRES_IN

        return CachedToken(access_token=access_token, expires_at=self._clock() + expires_in)

    def clear_cache(self, tenant_id: Optional[str] = None, client_id: Optional[str] = None) -> None:
        """
        Clear cached tokens.

        Args:
            tenant_id: With client_id, drop only this pair's entry.
            client_id: With tenant_id, drop only this pair's entry.
                       If either is None, clear the entire cache.
        """
        with self._lock:
            if tenant_id and client_id:
                self._cache.pop((tenant_id, client_id), None)
            else:
                self._cache.clear()

    def cache_stats(self) -> dict:
        """
        Get token cache statistics for monitoring.

        Returns:
            dict with cache size and "tenant:client" keys
        """
        with self._lock:
            return {
                "cached_credentials": len(self._cache),
                "keys": [f"{tenant}:{client}" for tenant, client in self._cache],
            }


_default_manager: Optional[TokenManager] = None
_default_lock = threading.Lock()


def get_token_manager() -> TokenManager:
    """Return the process-wide token manager, creating it on first use."""
    global _default_manager
    with _default_lock:
        if _default_manager is None:
            _default_manager = TokenManager()
        return _default_manager


class ClientSecretCredential(TokenCredential):
    """
    azure-core TokenCredential backed by a TokenManager.

    Scopes passed to get_token() are ignored; client-credentials tokens are
    always requested for the Graph ".default" scope.
    """

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        token_manager: Optional[TokenManager] = None,
    ):
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_manager = token_manager or get_token_manager()

    def get_token(self, *scopes: str, **kwargs) -> AccessToken:
        """
        Get access token (synchronous).

        Returns:
            AccessToken with token and integer expiration timestamp

        Raises:
            AuthenticationError: If the token endpoint rejects the request
        """
        entry = self.token_manager.get_token_entry(self.client_id, self.tenant_id, self.client_secret)
        return AccessToken(token=entry.access_token, expires_on=int(entry.expires_at))
