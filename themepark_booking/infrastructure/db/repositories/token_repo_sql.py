from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from themepark_booking.application.interfaces.token_repository import StoredToken, TokenRepository
from themepark_booking.domain.dates import as_utc
from themepark_booking.infrastructure.db.engine import session_scope
from themepark_booking.infrastructure.db.models import SmartOrderTokenModel


class SqlTokenRepo(TokenRepository):
    """Token cache shared across processes through the ``smartorder_auth_tokens`` table."""

    def __init__(self, session_maker: sessionmaker[Session]) -> None:
        self._session_maker = session_maker

    def get(self, key: str) -> StoredToken | None:
        with session_scope(self._session_maker) as session:
            row = session.execute(
                select(SmartOrderTokenModel).where(SmartOrderTokenModel.cache_key == key).limit(1)
            ).scalars().first()
            if row is None:
                return None
            return StoredToken(access_token=row.access_token, expires_at=as_utc(row.expires_at))

    def put(self, key: str, token: StoredToken) -> None:
        with session_scope(self._session_maker) as session:
            row = session.get(SmartOrderTokenModel, key)
            if row is None:
                session.add(
                    SmartOrderTokenModel(cache_key=key, access_token=token.access_token, expires_at=token.expires_at)
                )
            else:
                row.access_token = token.access_token
                row.expires_at = token.expires_at

    def forget(self, key: str) -> None:
        with session_scope(self._session_maker) as session:
            session.execute(delete(SmartOrderTokenModel).where(SmartOrderTokenModel.cache_key == key))
