"""XML-RPC transport for the Odoo external API.

This module provides the XmlRpcTransport class, which performs exactly one
remote call per invocation and classifies every failure into a typed
exception. Retries are the session manager's business, not this module's.
"""

import logging
import xmlrpc.client
from typing import Any
from xml.parsers.expat import ExpatError

import httpx

from odoo_dashboard.exceptions import (
    NetworkError,
    PoisonedSessionError,
    RpcFaultError,
    TransportError,
)

logger = logging.getLogger(__name__)

# Odoo XML-RPC endpoints (external API v2)
ENDPOINT_PATHS = {
    "common": "/xmlrpc/2/common",
    "object": "/xmlrpc/2/object",
}

HTML_MARKERS = ("<!doctype html", "<html")


def looks_like_html(content_type: str, body: bytes) -> bool:
    """Check whether a response is an HTML page rather than XML-RPC.

    Args:
        content_type: Value of the Content-Type response header.
        body: Raw response body.

    Returns:
        True if the header or the start of the body indicates HTML.
    """
    if "text/html" in content_type.lower():
        return True
    head = body[:256].lstrip().decode("utf-8", errors="replace").lower()
    return head.startswith(HTML_MARKERS)


class XmlRpcTransport:
    """Async XML-RPC client for the two Odoo endpoints.

    The payload is encoded and decoded with the standard library's
    ``xmlrpc.client`` codec and sent over an ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            base_url: Odoo server URL (scheme, host and optional port).
            timeout: Timeout in seconds for each call.
            http_client: Optional preconfigured client (used by tests).
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http_client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout,
                limits=httpx.Limits(max_keepalive_connections=5),
            )
            self._owns_client = True
        return self._http_client

    async def close(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def call(self, endpoint: str, method: str, params: tuple[Any, ...] | list[Any]) -> Any:
        """Perform a single XML-RPC call.

        Args:
            endpoint: "common" (authentication) or "object" (execute_kw).
            method: Remote method name.
            params: Positional parameters of the remote method.

        Returns:
            The decoded result.

        Raises:
            ValueError: If the endpoint is unknown.
            NetworkError: On connection errors and timeouts.
            TransportError: On a non-HTML HTTP error status.
            PoisonedSessionError: If the body is HTML or not valid XML-RPC.
            RpcFaultError: If the server returned an XML-RPC fault.
        """
        if endpoint not in ENDPOINT_PATHS:
            raise ValueError(f"Unknown XML-RPC endpoint: {endpoint}")

        url = f"{self.base_url}{ENDPOINT_PATHS[endpoint]}"
        payload = xmlrpc.client.dumps(tuple(params), methodname=method, allow_none=True)

        client = self._get_client()
        try:
            response = await client.post(
                url,
                content=payload.encode("utf-8"),
                headers={"Content-Type": "text/xml; charset=utf-8"},
            )
        except httpx.TimeoutException as e:
            raise NetworkError(f"Odoo call {method} timed out", e) from e
        except httpx.RequestError as e:
            raise NetworkError("Connection to Odoo failed", e) from e

        body = response.content
        if looks_like_html(response.headers.get("content-type", ""), body):
            logger.debug(f"HTML response from {endpoint}.{method} ({response.status_code})")
            raise PoisonedSessionError(snippet=body[:200].decode("utf-8", errors="replace"))

        if response.status_code >= 400:
            raise TransportError(
                f"Odoo HTTP error: {response.status_code}",
                "Check the Odoo server status",
                status_code=response.status_code,
            )

        try:
            result, _ = xmlrpc.client.loads(body, use_builtin_types=True)
        except xmlrpc.client.Fault as e:
            raise RpcFaultError(e.faultCode, e.faultString) from e
        except (ExpatError, xmlrpc.client.ResponseError, ValueError) as e:
            raise PoisonedSessionError(
                f"Could not decode XML-RPC response: {e}",
                snippet=body[:200].decode("utf-8", errors="replace"),
            ) from e

        return result[0] if result else None
