"""
Tests for Redis-backed typing indicators
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import redis

from app.services.typing_indicator import TypingIndicator, typing_key

from factories import make_experience, make_group, make_user


def member(user_id, first="Ana", last="Bee"):
    return SimpleNamespace(user_id=user_id, user=SimpleNamespace(full_name=f"{first} {last}"))


class TestTypingIndicator:

    def test_mark_sets_key_with_ttl(self):
        client = MagicMock()
        indicator = TypingIndicator(client=client, ttl_seconds=5)

        assert indicator.mark_typing("g1", "u1") is True
        client.set.assert_called_once_with("typing:grp:g1:user:u1", "1", ex=5)

    def test_who_is_typing_skips_caller_and_idle(self):
        client = MagicMock()
        live = {typing_key("g1", "u2"): "1"}
        client.get.side_effect = lambda key: live.get(key)
        indicator = TypingIndicator(client=client)

        typing = indicator.who_is_typing("g1", [member("u1"), member("u2", "Cy", "Dee"), member("u3")], "u1")

        assert typing == [{"userID": "u2", "name": "Cy Dee"}]
        assert typing_key("g1", "u1") not in [c.args[0] for c in client.get.call_args_list]

    def test_redis_errors_are_not_raised(self):
        client = MagicMock()
        client.set.side_effect = redis.ConnectionError("down")
        client.get.side_effect = redis.ConnectionError("down")
        indicator = TypingIndicator(client=client)

        assert indicator.mark_typing("g1", "u1") is False
        assert indicator.who_is_typing("g1", [member("u2")], "u1") == []

    def test_disabled_without_client(self):
        indicator = TypingIndicator()

        assert indicator.client is None
        assert indicator.mark_typing("g1", "u1") is False
        assert indicator.who_is_typing("g1", [member("u2")], "u1") == []
        assert indicator.ping() == {"status": "not_configured"}

    def test_ping(self):
        client = MagicMock()
        assert TypingIndicator(client=client).ping() == {"status": "up"}

        client.ping.side_effect = redis.ConnectionError("refused")
        result = TypingIndicator(client=client).ping()
        assert result["status"] == "down"


class TestTypingEndpoints:

    def test_member_gets_empty_list_when_disabled(self, client, login, db):
        host = make_user(db)
        owner = make_user(db, first_name="Omar")
        group = make_group(db, owner, make_experience(db, host))
        login(owner)

        assert client.post(f"/api/groups/{group.id}/typing").json() == {"success": True}
        assert client.get(f"/api/groups/{group.id}/typing").json() == {"success": True, "typing": []}

    def test_non_member_forbidden(self, client, login, db):
        host = make_user(db)
        group = make_group(db, make_user(db), make_experience(db, host))
        login(make_user(db, first_name="Nosy"))

        assert client.get(f"/api/groups/{group.id}/typing").status_code == 403
