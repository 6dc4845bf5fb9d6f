import hashlib
from datetime import timedelta
from typing import Any

import httpx
from pybreaker import CircuitBreaker

from themepark_booking.application.interfaces.clock import Clock, SystemClock
from themepark_booking.application.interfaces.token_repository import StoredToken, TokenRepository
from themepark_booking.domain.errors import AdapterError
from themepark_booking.infrastructure.circuit_breaker import call_with_breaker
from themepark_booking.infrastructure.http.base_client import VendorHttpClient
from themepark_booking.infrastructure.in_memory.token_repo import InMemoryTokenRepo

DEFAULT_SMARTORDER_BASE_URL = "https://QACorpAPI.ucdp.net"
TOKEN_PATH = "connect/token"
TOKEN_SCOPE = "SmartOrder"
# Seconds shaved off the vendor expiry so an about-to-expire token is never sent.
TOKEN_SAFETY_MARGIN = 300
DEFAULT_EXPIRES_IN = 3600


class SmartOrderHttpClient(VendorHttpClient):
    """
    SmartOrder2 transport with OAuth2 client-credentials handling.

    Token lookup order: the token held by this instance, then the shared
    token repository, then a fresh ``POST connect/token``. Refreshing is
    idempotent, so concurrent processes sharing a repository need no lock.
    ``customerId`` is added to every GET query and POST body.
    """

    provider = "smartorder"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        customer_id: str,
        base_url: str = DEFAULT_SMARTORDER_BASE_URL,
        timeout_seconds: float = 600.0,
        verify_ssl: bool = True,
        token_repo: TokenRepository | None = None,
        clock: Clock | None = None,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        super().__init__(base_url, timeout_seconds=timeout_seconds, verify_ssl=verify_ssl, breaker=breaker)
        self._client_id = client_id
        self._client_secret = client_secret
        self._customer_id = customer_id
        self._token_repo = token_repo or InMemoryTokenRepo()
        self._clock = clock or SystemClock()
        self._token: StoredToken | None = None

    @property
    def cache_key(self) -> str:
        digest = hashlib.md5(f"{self._client_id}{self._customer_id}".encode()).hexdigest()
        return f"smartorder_token_{digest}"

    def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        query = dict(params or {})
        query["customerId"] = self._customer_id
        return self._request("GET", path, params=query)

    def post(self, path: str, payload: dict[str, Any] | None = None) -> Any:
        body = dict(payload or {})
        body["customerId"] = self._customer_id
        return self._request("POST", path, json=body)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        self.access_token()
        return super()._request(method, path, **kwargs)

    def _auth_headers(self) -> dict[str, str]:
        token = self._token.access_token if self._token else ""
        return {"Authorization": f"Bearer {token}"}

    def access_token(self) -> str:
        now = self._clock.now()
        if self._token and self._token.is_valid(now):
            return self._token.access_token

        cached = self._token_repo.get(self.cache_key)
        if cached and cached.is_valid(now):
            self._token = cached
            return cached.access_token

        self._token = call_with_breaker(self._breaker, self.provider, self._refresh_token)
        self._token_repo.put(self.cache_key, self._token)
        return self._token.access_token

    def _refresh_token(self) -> StoredToken:
        form = {
            "grant_type": "client_credentials",
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "scope": TOKEN_SCOPE,
        }
        try:
            with httpx.Client(timeout=self._timeout, verify=self._verify) as client:
                response = client.post(self.url(TOKEN_PATH), data=form)
        except httpx.HTTPError as exc:
            self._logger.error("SmartOrder auth failed", extra={"error": str(exc)})
            raise AdapterError(f"SmartOrder auth failed: {exc}", code="AUTH_ERROR") from exc

        data = self.decode(response)
        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            raise AdapterError(
                "Failed to obtain access token from SmartOrder API",
                code="AUTH_ERROR",
                context={"http_status": response.status_code},
            )
        expires_in = int(data.get("expires_in") or DEFAULT_EXPIRES_IN)
        expires_at = self._clock.now() + timedelta(seconds=expires_in - TOKEN_SAFETY_MARGIN)
        self._logger.info("SmartOrder token refreshed", extra={"expires_at": expires_at.isoformat()})
        return StoredToken(access_token=access_token, expires_at=expires_at)
