"""Unit tests for partsauth.core.tokens: issue/validate, expiry boundary and tamper detection."""

import base64
import json
import unittest
from datetime import UTC, datetime, timedelta

import jwt

from partsauth.core.config import settings
from partsauth.core.tokens import (
    AccessTokenClaims,
    BadSignatureError,
    ExpiredTokenError,
    MalformedTokenError,
    PrincipalType,
    TokenValidationError,
    issue_access_token,
    validate_access_token,
)

ISSUED_AT = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


def _claims(**kwargs: object) -> AccessTokenClaims:
    defaults: dict[str, object] = {
        "principal_id": 42,
        "email": "a@x.com",
        "principal_type": PrincipalType.ADMIN,
    }
    defaults.update(kwargs)
    return AccessTokenClaims(**defaults)  # type: ignore[arg-type]


def _b64(data: dict[str, object]) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


class TestRoundTrip(unittest.TestCase):
    """validate(issue(claims)) returns the same claim fields plus iat/exp."""

    def test_fields_preserved(self) -> None:
        claims = _claims()
        token = issue_access_token(claims, ttl_minutes=15, now=ISSUED_AT)
        decoded = validate_access_token(token, now=ISSUED_AT + timedelta(minutes=1))
        self.assertEqual(decoded.principal_id, claims.principal_id)
        self.assertEqual(decoded.email, claims.email)
        self.assertEqual(decoded.principal_type, claims.principal_type)
        self.assertEqual(decoded.issued_at, ISSUED_AT)
        self.assertEqual(decoded.expires_at, ISSUED_AT + timedelta(minutes=15))
        self.assertTrue(decoded.has_category_claim)

    def test_each_principal_type_gets_its_id_claim(self) -> None:
        for principal_type, claim in (
            (PrincipalType.ADMIN, "admin_id"),
            (PrincipalType.SUPPLIER, "supplier_id"),
            (PrincipalType.MOBILE_USER, "user_id"),
        ):
            token = issue_access_token(_claims(principal_type=principal_type), now=ISSUED_AT)
            payload = jwt.decode(token, options={"verify_signature": False})
            self.assertEqual(payload[claim], 42)
            self.assertEqual(payload["sub"], "42")
            self.assertEqual(payload["principal_type"], principal_type.value)

    def test_default_ttl_comes_from_settings(self) -> None:
        token = issue_access_token(_claims(), now=ISSUED_AT)
        decoded = validate_access_token(token, now=ISSUED_AT)
        self.assertEqual(
            decoded.expires_at - decoded.issued_at,
            timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )


class TestExpiry(unittest.TestCase):
    """A 15-minute token is valid at +14m59s and expired at +15m01s."""

    def setUp(self) -> None:
        self.token = issue_access_token(_claims(), ttl_minutes=15, now=ISSUED_AT)

    def test_valid_just_before_expiry(self) -> None:
        decoded = validate_access_token(self.token, now=ISSUED_AT + timedelta(minutes=14, seconds=59))
        self.assertEqual(decoded.principal_id, 42)

    def test_expired_just_after(self) -> None:
        with self.assertRaises(ExpiredTokenError):
            validate_access_token(self.token, now=ISSUED_AT + timedelta(minutes=15, seconds=1))

    def test_expired_exactly_at_exp(self) -> None:
        with self.assertRaises(ExpiredTokenError):
            validate_access_token(self.token, now=ISSUED_AT + timedelta(minutes=15))


class TestTamperDetection(unittest.TestCase):
    """Tampered or foreign tokens never validate."""

    def setUp(self) -> None:
        self.token = issue_access_token(_claims(), ttl_minutes=15, now=ISSUED_AT)
        self.now = ISSUED_AT + timedelta(minutes=1)

    def test_modified_signature(self) -> None:
        header, payload, signature = self.token.split(".")
        flipped = ("A" if signature[0] != "A" else "B") + signature[1:]
        with self.assertRaises(BadSignatureError):
            validate_access_token(f"{header}.{payload}.{flipped}", now=self.now)

    def test_modified_payload(self) -> None:
        header, _payload, signature = self.token.split(".")
        forged = _b64(
            {
                "sub": "1",
                "admin_id": 1,
                "email": "root@x.com",
                "principal_type": "admin",
                "iat": int(ISSUED_AT.timestamp()),
                "exp": int((ISSUED_AT + timedelta(days=365)).timestamp()),
            }
        )
        with self.assertRaises((BadSignatureError, MalformedTokenError)):
            validate_access_token(f"{header}.{forged}.{signature}", now=self.now)

    def test_signed_with_other_secret(self) -> None:
        payload = jwt.decode(self.token, options={"verify_signature": False})
        foreign = jwt.encode(payload, "another-secret-that-is-long-enough-1234", algorithm="HS256")
        with self.assertRaises(BadSignatureError):
            validate_access_token(foreign, now=self.now)

    def test_unsigned_token_rejected(self) -> None:
        payload = jwt.decode(self.token, options={"verify_signature": False})
        unsigned = f"{_b64({'alg': 'none', 'typ': 'JWT'})}.{_b64(payload)}."
        with self.assertRaises(TokenValidationError):
            validate_access_token(unsigned, now=self.now)

    def test_garbage_is_malformed(self) -> None:
        for token in ("", "not-a-token", "a.b", "a.b.c"):
            with self.subTest(token=token):
                with self.assertRaises(MalformedTokenError):
                    validate_access_token(token, now=self.now)

    def test_missing_required_claim_is_malformed(self) -> None:
        token = jwt.encode(
            {"sub": "1", "email": "a@x.com", "iat": 1, "exp": 4102444800},
            settings.JWT_SECRET.get_secret_value(),
            algorithm=settings.JWT_ALGORITHM,
        )
        with self.assertRaises(MalformedTokenError):
            validate_access_token(token, now=self.now)

    def test_unknown_principal_type_is_malformed(self) -> None:
        token = jwt.encode(
            {
                "sub": "1",
                "email": "a@x.com",
                "principal_type": "robot",
                "iat": 1,
                "exp": 4102444800,
            },
            settings.JWT_SECRET.get_secret_value(),
            algorithm=settings.JWT_ALGORITHM,
        )
        with self.assertRaises(MalformedTokenError):
            validate_access_token(token, now=self.now)

    def test_missing_category_claim_is_flagged(self) -> None:
        token = jwt.encode(
            {
                "sub": "7",
                "email": "a@x.com",
                "principal_type": "mobile_user",
                "iat": int(ISSUED_AT.timestamp()),
                "exp": int((ISSUED_AT + timedelta(minutes=5)).timestamp()),
            },
            settings.JWT_SECRET.get_secret_value(),
            algorithm=settings.JWT_ALGORITHM,
        )
        decoded = validate_access_token(token, now=self.now)
        self.assertFalse(decoded.has_category_claim)


if __name__ == "__main__":
    unittest.main()
