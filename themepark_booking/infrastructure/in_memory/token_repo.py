from themepark_booking.application.interfaces.token_repository import StoredToken, TokenRepository


class InMemoryTokenRepo(TokenRepository):
    def __init__(self) -> None:
        self._tokens: dict[str, StoredToken] = {}

    def get(self, key: str) -> StoredToken | None:
        return self._tokens.get(key)

    def put(self, key: str, token: StoredToken) -> None:
        self._tokens[key] = token

    def forget(self, key: str) -> None:
        self._tokens.pop(key, None)
