from datetime import timedelta

from jose import jwt

from safecircle.config import settings
from safecircle.core.security import (
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    generate_refresh_id,
    get_password_hash,
    verify_password,
)


def test_access_token_round_trip():
    token = create_access_token(7)
    payload = decode_access_token(token)
    assert payload is not None
    assert payload["sub"] == "7"
    assert payload["typ"] == "access"


def test_access_decoder_rejects_refresh_token():
    refresh = create_refresh_token(1, "abc")
    assert decode_access_token(refresh) is None


def test_refresh_decoder_rejects_access_token():
    access = create_access_token(1)
    assert decode_refresh_token(access) is None


def test_refresh_token_carries_identifier():
    token = create_refresh_token(9, "tid-xyz")
    payload = decode_refresh_token(token)
    assert payload is not None
    assert payload["typ"] == "refresh"
    assert payload["tid"] == "tid-xyz"
    assert payload["sub"] == "9"


def test_expired_access_token_is_rejected():
    token = create_access_token(3, expires_delta=timedelta(seconds=-5))
    assert decode_access_token(token) is None


def test_token_signed_with_other_secret_is_rejected():
    forged = jwt.encode({"sub": "1", "typ": "access"}, "not-the-secret", algorithm=settings.ALGORITHM)
    assert decode_access_token(forged) is None


def test_refresh_identifier_is_128_bit_hex():
    refresh_id = generate_refresh_id()
    assert len(refresh_id) == 32
    int(refresh_id, 16)
    assert generate_refresh_id() != refresh_id


def test_password_hash_verifies():
    hashed = get_password_hash("s3cret-pass")
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong", hashed)
