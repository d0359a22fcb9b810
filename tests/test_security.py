from datetime import datetime, timedelta, timezone

import jwt
import pytest

from natours.core.config import Settings
from natours.core.errors import AppError, ErrorKind
from natours.core.security import (
    INVALID_TOKEN_MESSAGE,
    changed_password_after,
    create_password_reset_token,
    decode_token,
    digest_reset_token,
    epoch_ms,
    hash_password,
    sign_token,
    verify_password,
)
from natours.models import utcnow

from tests.conftest import make_settings


def test_password_hash_is_salted_and_verifiable(settings):
    first = hash_password("longenough1", settings)
    second = hash_password("longenough1", settings)

    assert first != "longenough1"
    assert first != second
    assert verify_password("longenough1", first, settings)
    assert not verify_password("wrong-password", first, settings)


def test_verify_without_hash_fails(settings):
    assert verify_password("anything", None, settings) is False


def test_default_cost_factor_is_twelve():
    assert Settings.model_fields["BCRYPT_ROUNDS"].default == 12
    assert Settings.model_fields["JWT_EXPIRES_IN_DAYS"].default == 90


def test_token_round_trip(settings):
    token = sign_token("user-1", settings)

    data = decode_token(token, settings)

    assert data.id == "user-1"
    assert data.exp - data.iat == 90 * 24 * 60 * 60


def test_token_is_a_standard_hs256_jwt(settings):
    token = sign_token("user-1", settings)

    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=["HS256"])

    assert payload["id"] == "user-1"
    assert "iat" in payload


def test_expired_token_is_rejected(settings):
    issued = datetime.now(timezone.utc) - timedelta(days=91)
    token = sign_token("user-1", settings, now=issued)

    with pytest.raises(AppError) as exc_info:
        decode_token(token, settings)

    assert exc_info.value.kind == ErrorKind.AUTHENTICATION
    assert exc_info.value.message == INVALID_TOKEN_MESSAGE


def test_token_signed_with_another_secret_is_rejected(settings):
    other = make_settings(SECRET_KEY="a-completely-different-secret-key-value")
    token = sign_token("user-1", other)

    with pytest.raises(AppError) as exc_info:
        decode_token(token, settings)

    assert exc_info.value.status_code == 401


def test_garbage_token_is_rejected(settings):
    with pytest.raises(AppError) as exc_info:
        decode_token("not.a.token", settings)

    assert exc_info.value.kind == ErrorKind.AUTHENTICATION


def test_token_without_id_claim_is_rejected(settings):
    now = int(datetime.now(timezone.utc).timestamp())
    token = jwt.encode({"iat": now, "exp": now + 60}, settings.SECRET_KEY, algorithm="HS256")

    with pytest.raises(AppError):
        decode_token(token, settings)


def test_changed_password_after():
    changed = datetime(2024, 1, 1, 12, 0, 0, 250000)
    changed_ms = epoch_ms(changed)

    assert changed_password_after(None, changed_ms) is False
    assert changed_password_after(changed, changed_ms - 1) is True
    assert changed_password_after(changed, changed_ms) is False
    assert changed_password_after(changed, changed_ms + 1) is False


def test_token_signed_within_the_same_second_is_ordered_by_milliseconds(settings):
    changed = datetime(2024, 1, 1, 12, 0, 0, 600000)
    before = sign_token("user-1", settings, now=changed.replace(microsecond=100000, tzinfo=timezone.utc))
    at_change = sign_token("user-1", settings, now=changed.replace(tzinfo=timezone.utc))

    stale = jwt.decode(before, settings.SECRET_KEY, algorithms=["HS256"], options={"verify_exp": False})
    fresh = jwt.decode(at_change, settings.SECRET_KEY, algorithms=["HS256"], options={"verify_exp": False})

    assert stale["iat"] == fresh["iat"]
    assert changed_password_after(changed, stale["iat_ms"]) is True
    assert changed_password_after(changed, fresh["iat_ms"]) is False


def test_token_without_millisecond_issue_time_is_rejected(settings):
    now = int(datetime.now(timezone.utc).timestamp())
    token = jwt.encode({"id": "user-1", "iat": now, "exp": now + 60}, settings.SECRET_KEY, algorithm="HS256")

    with pytest.raises(AppError):
        decode_token(token, settings)


def test_reset_token_digest_is_keyed_and_not_plaintext(settings):
    token, digest, expires_at = create_password_reset_token(settings)

    assert digest != token
    assert digest == digest_reset_token(token, settings)
    assert digest != digest_reset_token(token, make_settings(SECRET_KEY="another-secret-key-for-digests-0000"))
    assert len(token) >= 40


def test_reset_token_expires_in_ten_minutes(settings):
    before = utcnow()
    _, _, expires_at = create_password_reset_token(settings)

    assert timedelta(minutes=9, seconds=59) <= expires_at - before <= timedelta(minutes=10, seconds=1)
