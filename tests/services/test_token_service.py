from __future__ import annotations

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from creatorhub.services import token_service


def test_roundtrip_carries_subject_and_default_role() -> None:
    token = token_service.create_access_token(sub="user-1")
    claims = token_service.decode_access_token(token)
    assert claims["sub"] == "user-1"
    assert claims["roles"] == ["user"]
    assert claims["iss"] == token_service.ISSUER
    assert claims["aud"] == token_service.AUDIENCE


def test_expired_token_rejected() -> None:
    token = token_service.create_access_token(sub="user-1", ttl_minutes=-1)
    with pytest.raises(jwt.ExpiredSignatureError):
        token_service.decode_access_token(token)


def test_token_from_another_key_rejected() -> None:
    other = ec.generate_private_key(ec.SECP256R1())
    forged = jwt.encode(
        {
            "sub": "user-1",
            "iss": token_service.ISSUER,
            "aud": token_service.AUDIENCE,
            "exp": 9999999999,
            "iat": 0,
        },
        other,
        algorithm="ES256",
    )
    with pytest.raises(jwt.InvalidSignatureError):
        token_service.decode_access_token(forged)


def test_hs256_token_rejected() -> None:
    forged = jwt.encode(
        {"sub": "user-1", "exp": 9999999999, "iat": 0},
        "a-shared-secret-long-enough-for-hmac-sha256",
        algorithm="HS256",
    )
    with pytest.raises(jwt.InvalidAlgorithmError):
        token_service.decode_access_token(forged)


def test_wrong_audience_rejected() -> None:
    payload = jwt.decode(
        token_service.create_access_token(sub="user-1"),
        options={"verify_signature": False},
    )
    payload["aud"] = "someone-else"
    token = jwt.encode(payload, token_service._private_key, algorithm="ES256")
    with pytest.raises(jwt.InvalidAudienceError):
        token_service.decode_access_token(token)
