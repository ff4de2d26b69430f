"""Tests for RefreshTokenStore: issue, validate, rotate (compare-and-swap), revoke and purge."""

import unittest
from datetime import UTC, datetime, timedelta

from sqlalchemy import func, select

from partsauth.core.errors import (
    RefreshPrincipalInactiveError,
    RefreshTokenExpiredError,
    RefreshTokenNotFoundError,
)
from partsauth.models import Principal, RefreshToken
from partsauth.services.refresh_tokens import (
    RefreshTokenStore,
    generate_refresh_token,
    token_preview,
)
from tests.dbutil import add_principal, make_session_factory, make_settings

NOW = datetime(2026, 3, 1, 9, 0, 0, tzinfo=UTC)


class RefreshTokenTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        self.settings = make_settings(REFRESH_TOKEN_EXPIRE_DAYS=7)
        self.store = RefreshTokenStore(self.db, self.settings)
        self.principal = add_principal(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def _row_count(self) -> int:
        return self.db.execute(select(func.count()).select_from(RefreshToken)).scalar_one()


class TestGenerate(unittest.TestCase):
    def test_hex_64_chars_and_unique(self) -> None:
        tokens = {generate_refresh_token() for _ in range(50)}
        self.assertEqual(len(tokens), 50)
        for token in tokens:
            self.assertEqual(len(token), 64)
            int(token, 16)

    def test_preview_hides_most_of_token(self) -> None:
        token = generate_refresh_token()
        self.assertEqual(token_preview(token), token[:10] + "...")


class TestIssueAndValidate(RefreshTokenTestCase):
    def test_issue_persists_row_with_ttl(self) -> None:
        issued = self.store.issue(self.principal.id, NOW)
        self.assertEqual(issued.expires_at, NOW + timedelta(days=7))
        record = self.store.validate(issued.token, NOW + timedelta(days=1))
        self.assertEqual(record.principal_id, self.principal.id)
        self.assertEqual(record.principal_type, "admin")
        self.assertEqual(record.expires_at, NOW + timedelta(days=7))

    def test_unknown_token(self) -> None:
        with self.assertRaises(RefreshTokenNotFoundError):
            self.store.validate("0" * 64, NOW)

    def test_expired_token_is_deleted(self) -> None:
        issued = self.store.issue(self.principal.id, NOW)
        with self.assertRaises(RefreshTokenExpiredError):
            self.store.validate(issued.token, NOW + timedelta(days=7, seconds=1))
        self.assertEqual(self._row_count(), 0)
        with self.assertRaises(RefreshTokenNotFoundError):
            self.store.validate(issued.token, NOW)

    def test_inactive_principal_token_is_revoked(self) -> None:
        issued = self.store.issue(self.principal.id, NOW)
        self.principal.status = "inactive"
        self.db.commit()
        with self.assertRaises(RefreshPrincipalInactiveError) as ctx:
            self.store.validate(issued.token, NOW)
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertEqual(self._row_count(), 0)

    def test_multiple_sessions_per_principal(self) -> None:
        first = self.store.issue(self.principal.id, NOW)
        second = self.store.issue(self.principal.id, NOW)
        self.assertNotEqual(first.token, second.token)
        self.assertEqual(self._row_count(), 2)
        self.store.validate(first.token, NOW)
        self.store.validate(second.token, NOW)


class TestRotate(RefreshTokenTestCase):
    def test_rotation_replaces_value_and_extends_expiry(self) -> None:
        issued = self.store.issue(self.principal.id, NOW)
        later = NOW + timedelta(days=3)
        rotated = self.store.rotate(issued.token, later)
        self.assertNotEqual(rotated.token, issued.token)
        self.assertEqual(rotated.expires_at, later + timedelta(days=7))
        self.assertEqual(self._row_count(), 1)
        with self.assertRaises(RefreshTokenNotFoundError):
            self.store.validate(issued.token, later)
        self.assertEqual(self.store.validate(rotated.token, later).principal_id, self.principal.id)

    def test_second_rotation_of_same_value_loses(self) -> None:
        issued = self.store.issue(self.principal.id, NOW)
        self.store.rotate(issued.token, NOW)
        with self.assertRaises(RefreshTokenNotFoundError):
            self.store.rotate(issued.token, NOW)

    def test_expired_token_cannot_rotate(self) -> None:
        issued = self.store.issue(self.principal.id, NOW)
        with self.assertRaises(RefreshTokenNotFoundError):
            self.store.rotate(issued.token, NOW + timedelta(days=8))

    def test_rotation_leaves_other_sessions_alone(self) -> None:
        first = self.store.issue(self.principal.id, NOW)
        second = self.store.issue(self.principal.id, NOW)
        self.store.rotate(first.token, NOW)
        self.store.validate(second.token, NOW)


class TestRevoke(RefreshTokenTestCase):
    def test_revoke_is_idempotent(self) -> None:
        issued = self.store.issue(self.principal.id, NOW)
        self.assertTrue(self.store.revoke(issued.token))
        self.assertFalse(self.store.revoke(issued.token))
        self.assertFalse(self.store.revoke("never-issued"))

    def test_revoke_all_only_touches_one_principal(self) -> None:
        other = add_principal(self.db, email="b@x.com")
        self.store.issue(self.principal.id, NOW)
        self.store.issue(self.principal.id, NOW)
        kept = self.store.issue(other.id, NOW)
        self.assertEqual(self.store.revoke_all(self.principal.id), 2)
        self.assertEqual(self._row_count(), 1)
        self.store.validate(kept.token, NOW)

    def test_purge_expired(self) -> None:
        old = self.store.issue(self.principal.id, NOW - timedelta(days=10))
        fresh = self.store.issue(self.principal.id, NOW)
        self.assertEqual(self.store.purge_expired(NOW), 1)
        self.assertEqual(self.store.purge_expired(NOW), 0)
        with self.assertRaises(RefreshTokenNotFoundError):
            self.store.validate(old.token, NOW)
        self.store.validate(fresh.token, NOW)

    def test_deleting_principal_cascades(self) -> None:
        self.store.issue(self.principal.id, NOW)
        self.db.delete(self.db.get(Principal, self.principal.id))
        self.db.commit()
        self.assertEqual(self._row_count(), 0)


if __name__ == "__main__":
    unittest.main()
