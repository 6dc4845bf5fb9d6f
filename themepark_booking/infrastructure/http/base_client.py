import logging
from typing import Any

import httpx
from pybreaker import CircuitBreaker

from themepark_booking.domain.errors import AdapterError
from themepark_booking.infrastructure.circuit_breaker import build_breaker, call_with_breaker


class VendorHttpClient:
    """
    Blocking JSON client shared by the vendor transports.

    Each call opens its own ``httpx.Client`` with the provider timeout and
    runs through the provider's circuit breaker. Transport errors and 5xx
    responses raise ``AdapterError``; any other response is decoded and
    returned, so adapters can inspect vendor ``error`` bodies themselves.
    """

    provider = "vendor"

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 600.0,
        verify_ssl: bool = True,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._verify = verify_ssl
        self._breaker = breaker or build_breaker(self.provider)
        self._logger = logging.getLogger(__name__)

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    def url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def _auth_headers(self) -> dict[str, str]:
        return {}

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        return call_with_breaker(self._breaker, self.provider, self._send, method, path, **kwargs)

    def _send(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        url = self.url(path)
        headers = {"Accept": "application/json", **self._auth_headers()}
        try:
            with httpx.Client(timeout=self._timeout, verify=self._verify) as client:
                if method == "GET":
                    response = client.get(url, params=params, headers=headers)
                elif method == "POST":
                    response = client.post(url, json=json or {}, headers=headers)
                elif method == "PUT":
                    response = client.put(url, json=json or {}, headers=headers)
                elif method == "DELETE":
                    response = client.delete(url, params=params, headers=headers)
                else:
                    raise ValueError(f"Unsupported HTTP method: {method}")
        except httpx.HTTPError as exc:
            self._logger.error(
                "Vendor request failed",
                extra={"provider": self.provider, "method": method, "url": url, "error": str(exc)},
            )
            raise AdapterError(
                f"{self.provider} request failed: {exc}",
                code="NETWORK_ERROR",
                context={"method": method, "url": url},
            ) from exc

        if response.status_code >= 500:
            self._logger.error(
                "Vendor server error",
                extra={"provider": self.provider, "url": url, "http_status": response.status_code},
            )
            raise AdapterError(
                f"{self.provider} returned HTTP {response.status_code}",
                code="HTTP_ERROR",
                context={"http_status": response.status_code, "url": url},
            )
        return self.decode(response)

    @staticmethod
    def decode(response) -> Any:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if data is not None else {}
