"""HTTP client for the Marqeta Core API (v3)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from .config import MARQETA_SANDBOX_URL, JitCardSettings
from .exceptions import UpstreamError, UpstreamUnavailableError

logger = logging.getLogger(__name__)

CONNECTIVITY_CHECK_PATH = "/cardproducts?count=1"


@dataclass(frozen=True)
class ApiResponse:
    status: int
    data: Any


class MarqetaClient:
    """
    Authenticated client for the card-issuing platform.

    Every request carries HTTP Basic credentials built from the application
    token and the admin access token. Requests are single-attempt and use the
    httpx default timeout.

    Args:
        app_token: Marqeta application token
        admin_token: Marqeta admin access token
        base_url: API base including the ``/v3`` prefix
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``)
    """

    def __init__(
        self,
        app_token: str,
        admin_token: str,
        base_url: str = MARQETA_SANDBOX_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not app_token or not admin_token:
            raise ValueError(
                "Marqeta credentials required. Set JITCARD_MARQETA_APP_TOKEN "
                "and JITCARD_MARQETA_ADMIN_TOKEN."
            )
        self._base_url = base_url.rstrip("/")
        self._auth = httpx.BasicAuth(app_token, admin_token)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(
        cls,
        settings: JitCardSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "MarqetaClient":
        return cls(
            app_token=settings.marqeta_app_token,
            admin_token=settings.marqeta_admin_token,
            base_url=settings.marqeta_base_url,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the pooled HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                auth=self._auth,
                headers={
                    "Accept": "application/json",
                    "User-Agent": "jitcard/0.1.0",
                },
                transport=self._transport,
            )
        return self._client

    async def send(
        self,
        method: str,
        path: str,
        body: Optional[dict[str, Any]] = None,
    ) -> ApiResponse:
        """
        Issue one request against the platform.

        Args:
            method: HTTP method
            path: Path below the base URL, query string included
            body: JSON body, omitted when None

        Returns:
            ApiResponse with the status and the parsed JSON body ({} if empty)

        Raises:
            UpstreamError: Non-2xx response
            UpstreamUnavailableError: The request never got a response
        """
        url = f"{self._base_url}/{path.lstrip('/')}"
        logger.info("Marqeta API request", extra={"method": method, "url": url})

        try:
            response = await self._get_client().request(method, url, json=body)
        except httpx.HTTPError as exc:
            logger.error(
                "Marqeta API unreachable",
                extra={"method": method, "path": path, "error": str(exc)},
            )
            raise UpstreamUnavailableError(
                f"Could not reach Marqeta API: {exc}",
                details={"path": path},
            ) from exc

        if not response.is_success:
            try:
                payload = response.json()
            except ValueError:
                payload = {"message": response.reason_phrase}
            logger.warning(
                "Marqeta API error",
                extra={"method": method, "path": path, "status_code": response.status_code, "error": payload},
            )
            raise UpstreamError(response.status_code, payload)

        if not response.content:
            return ApiResponse(status=response.status_code, data={})
        try:
            data = response.json()
        except ValueError:
            data = {}
        return ApiResponse(status=response.status_code, data=data)

    async def ping(self) -> bool:
        """Lightweight read used as a connectivity check. Never raises."""
        try:
            await self.send("GET", CONNECTIVITY_CHECK_PATH)
        except (UpstreamError, UpstreamUnavailableError) as exc:
            logger.error("Marqeta API connection failed: %s", exc.message)
            return False
        logger.info("Marqeta API connection successful")
        return True

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "MarqetaClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
