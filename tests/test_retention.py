"""Unit and integration tests for data retention: delete-only run_retention."""

import unittest
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

from sqlalchemy import func, select

from partsauth.models import LoginAttempt, RefreshToken
from partsauth.services.refresh_tokens import RefreshTokenStore
from partsauth.services.retention import run_retention
from tests.dbutil import add_principal, make_session_factory, make_settings

NOW = datetime(2026, 3, 1, 9, 0, 0, tzinfo=UTC)


def _mock_settings() -> MagicMock:
    settings = MagicMock()
    settings.REFRESH_TOKEN_EXPIRE_DAYS = 7
    settings.LOGIN_ATTEMPT_RETENTION_DAYS = 90
    return settings


class TestRetentionNothingToDelete(unittest.TestCase):
    """When nothing is old enough, run_retention returns (0, 0) and logs nothing."""

    def test_returns_zero(self) -> None:
        session = MagicMock()
        session.execute.return_value.rowcount = 0
        with self.assertNoLogs("partsauth.services.retention", level="INFO"):
            tokens_deleted, attempts_deleted = run_retention(session, _mock_settings(), NOW)
        self.assertEqual(tokens_deleted, 0)
        self.assertEqual(attempts_deleted, 0)
        self.assertEqual(session.execute.call_count, 2)
        session.add.assert_not_called()


class TestRetentionDeletes(unittest.TestCase):
    """Rows deleted by both statements are reported and the session is committed."""

    def test_reports_counts(self) -> None:
        session = MagicMock()
        token_result, attempt_result = MagicMock(rowcount=3), MagicMock(rowcount=2)
        session.execute.side_effect = [token_result, attempt_result]
        with self.assertLogs("partsauth.services.retention", level="INFO"):
            tokens_deleted, attempts_deleted = run_retention(session, _mock_settings(), NOW)
        self.assertEqual((tokens_deleted, attempts_deleted), (3, 2))
        self.assertGreaterEqual(session.commit.call_count, 1)


class TestRetentionIntegration(unittest.TestCase):
    """Against a real (in-memory) database: only expired tokens and aged attempts go."""

    def setUp(self) -> None:
        self.db = make_session_factory()()
        self.settings = make_settings(LOGIN_ATTEMPT_RETENTION_DAYS=90)
        self.principal = add_principal(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def _count(self, model: type) -> int:
        return self.db.execute(select(func.count()).select_from(model)).scalar_one()

    def _attempt(self, created_at: datetime) -> None:
        self.db.add(
            LoginAttempt(
                principal_id=self.principal.id,
                email=self.principal.email,
                success=False,
                reason="bad_password",
                created_at=created_at,
            )
        )
        self.db.commit()

    def test_retention_run(self) -> None:
        store = RefreshTokenStore(self.db, self.settings)
        store.issue(self.principal.id, NOW - timedelta(days=8))
        live = store.issue(self.principal.id, NOW)
        self._attempt(NOW - timedelta(days=91))
        self._attempt(NOW - timedelta(days=89))

        self.assertEqual(run_retention(self.db, self.settings, NOW), (1, 1))
        self.assertEqual(self._count(RefreshToken), 1)
        self.assertEqual(self._count(LoginAttempt), 1)
        store.validate(live.token, NOW)

        # Second run finds nothing.
        self.assertEqual(run_retention(self.db, self.settings, NOW), (0, 0))


if __name__ == "__main__":
    unittest.main()
