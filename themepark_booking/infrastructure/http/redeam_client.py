from typing import Any

from pybreaker import CircuitBreaker

from themepark_booking.infrastructure.http.base_client import VendorHttpClient

DEFAULT_REDEAM_BASE_URL = "https://booking.redeam.io/v1.2"


class RedeamHttpClient(VendorHttpClient):
    """Redeam transport. Every request carries ``X-API-Key`` and ``X-API-Secret``."""

    provider = "redeam"

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        base_url: str = DEFAULT_REDEAM_BASE_URL,
        timeout_seconds: float = 600.0,
        verify_ssl: bool = True,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        super().__init__(base_url, timeout_seconds=timeout_seconds, verify_ssl=verify_ssl, breaker=breaker)
        self._api_key = api_key
        self._api_secret = api_secret

    def _auth_headers(self) -> dict[str, str]:
        return {"X-API-Key": self._api_key, "X-API-Secret": self._api_secret}

    def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return self._request("GET", path, params=params or {})

    def post(self, path: str, payload: dict[str, Any] | None = None) -> Any:
        return self._request("POST", path, json=payload or {})

    def put(self, path: str, payload: dict[str, Any] | None = None) -> Any:
        return self._request("PUT", path, json=payload or {})

    def delete(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return self._request("DELETE", path, params=params or {})
