"""
Tests for dialect detection and locking helpers
"""

from unittest.mock import MagicMock

from app.models.user import User
from app.utils.db_helpers import (
    acquire_advisory_xact_lock,
    acquire_row_lock,
    advisory_lock_key,
    is_postgres,
)

from factories import make_user


def fake_session(dialect_name):
    session = MagicMock()
    session.bind.dialect.name = dialect_name
    return session


class TestDialect:

    def test_sqlite_session(self, db):
        assert is_postgres(db) is False

    def test_postgres_session(self):
        session = fake_session("postgresql")
        assert is_postgres(session) is True


class TestAdvisoryLock:

    def test_key_is_stable_signed_64_bit(self):
        key = advisory_lock_key("experience", "abc", "2025-03-01")

        assert key == advisory_lock_key("experience", "abc", "2025-03-01")
        assert key != advisory_lock_key("experience", "abc", "2025-03-02")
        assert -2 ** 63 <= key < 2 ** 63

    def test_skipped_on_sqlite(self, db):
        assert acquire_advisory_xact_lock(db, "property", "p1") is False

    def test_executed_on_postgres(self):
        session = fake_session("postgresql")

        assert acquire_advisory_xact_lock(session, "property", "p1") is True
        statement, params = session.execute.call_args.args
        assert "pg_advisory_xact_lock" in str(statement)
        assert params == {"key": advisory_lock_key("property", "p1")}


class TestRowLock:

    def test_plain_query_on_sqlite(self, db):
        user = make_user(db)
        assert acquire_row_lock(db, User, User.id == user.id).id == user.id

    def test_for_update_on_postgres(self):
        session = fake_session("postgresql")
        query = session.query.return_value.filter.return_value

        acquire_row_lock(session, User, User.id == "u1")

        query.with_for_update.assert_called_once_with()
        query.with_for_update.return_value.first.assert_called_once_with()
