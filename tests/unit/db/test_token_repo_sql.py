from datetime import datetime, timedelta, timezone

from themepark_booking.application.interfaces.token_repository import StoredToken
from themepark_booking.infrastructure.db.repositories.token_repo_sql import SqlTokenRepo

NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def test_put_get_and_forget(session_maker):
    repo = SqlTokenRepo(session_maker)

    assert repo.get("smartorder_token_abc") is None

    repo.put("smartorder_token_abc", StoredToken("T1", NOW + timedelta(seconds=3300)))
    stored = repo.get("smartorder_token_abc")

    assert stored.access_token == "T1"
    assert stored.expires_at == NOW + timedelta(seconds=3300)
    assert stored.is_valid(NOW)

    repo.put("smartorder_token_abc", StoredToken("T2", NOW + timedelta(seconds=60)))
    assert repo.get("smartorder_token_abc").access_token == "T2"

    repo.forget("smartorder_token_abc")
    assert repo.get("smartorder_token_abc") is None


def test_tokens_are_shared_between_repositories(session_maker):
    SqlTokenRepo(session_maker).put("key", StoredToken("T1", NOW))

    assert SqlTokenRepo(session_maker).get("key").access_token == "T1"
