from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass
class StoredToken:
    access_token: str
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return bool(self.access_token) and now < self.expires_at


class TokenRepository(ABC):
    """Key-value store for OAuth access tokens, keyed by a provider cache key."""

    @abstractmethod
    def get(self, key: str) -> StoredToken | None:
        pass

    @abstractmethod
    def put(self, key: str, token: StoredToken) -> None:
        pass

    @abstractmethod
    def forget(self, key: str) -> None:
        pass
