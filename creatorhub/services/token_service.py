"""Bearer token validation (ES256).

The identity provider issues access tokens; this service only needs to
verify them and read the subject.  ``create_access_token`` signs with the
same ephemeral key so tests and local tooling can mint tokens without a
running identity provider.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives.asymmetric import ec

# Dev/test: ephemeral EC key pair generated on import.
# TODO: load the identity provider's public key (JWKS) in prod.
_private_key = ec.generate_private_key(ec.SECP256R1())
_public_key = _private_key.public_key()

ALGORITHM = "ES256"
ISSUER = "creatorhub-identity"
AUDIENCE = "creatorhub"
ACCESS_TOKEN_TTL_MIN = 15


def create_access_token(
    *,
    sub: str,
    roles: list[str] | None = None,
    ttl_minutes: int = ACCESS_TOKEN_TTL_MIN,
) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ttl_minutes),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or ["user"],
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins the algorithm to ES256 so alg:none and alg-switching tokens are
    rejected.  Raises jwt.ExpiredSignatureError / jwt.InvalidTokenError.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat"]},
    )
