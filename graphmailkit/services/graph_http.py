"""
Shared HTTP plumbing for Microsoft Graph calls.

Each call resolves a bearer token from the credential, issues exactly one
request and raises GraphRequestError on any non-success status.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from azure.core.credentials import TokenCredential

from ..config import DEFAULT_HTTP_TIMEOUT
from ..exceptions import GraphRequestError
from .token_manager import GRAPH_SCOPE


log = logging.getLogger("graphmailkit.graph_http")

GRAPH_API_URL = "https://graph.microsoft.com/v1.0"


class GraphClientBase:
    """Bearer-authorized access to the Graph REST API."""

    def __init__(
        self,
        credential: TokenCredential,
        http_client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
    ):
        self.credential = credential
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout)

    def _headers(self) -> Dict[str, str]:
        token = self.credential.get_token(GRAPH_SCOPE).token
        return {"Authorization": f"Bearer {token}"}

    def _request(
        self,
        method: str,
        url: str,
        action: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """
        Issue one authorized Graph request.

        Args:
            method: HTTP verb
            url: Absolute Graph URL
            action: Short description used in error messages ("list folders")
            params: Query parameters
            json: JSON request body

        Returns:
            The successful httpx.Response

        Raises:
            GraphRequestError: On transport failure or non-success status
        """
        headers = self._headers()
        log.debug("%s %s", method, url)
        try:
            response = self._http.request(method, url, headers=headers, params=params, json=json)
        except httpx.RequestError as e:
            raise GraphRequestError(f"Failed to {action}: {e}")

        if not response.is_success:
            raise GraphRequestError(
                f"Failed to {action}: {response.status_code} - {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        return response

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
