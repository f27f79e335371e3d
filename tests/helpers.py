"""JWT signing helpers shared by the auth tests (plain functions, not fixtures)."""

from __future__ import annotations

import base64
import time

import jwt
from cryptography.hazmat.primitives.asymmetric import rsa

ISSUER = "https://auth.example.com"
AUDIENCE = "frontdesk-api"
JWKS_URL = "https://auth.example.com/.well-known/jwks.json"


def generate_rsa_keypair():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return private_key, private_key.public_key()


def _b64url_uint(n: int) -> str:
    length = (n.bit_length() + 7) // 8
    return base64.urlsafe_b64encode(n.to_bytes(length, "big")).rstrip(b"=").decode()


def create_jwks(public_key, kid: str = "test-key-1") -> dict:
    numbers = public_key.public_numbers()
    return {
        "keys": [
            {
                "kty": "RSA",
                "use": "sig",
                "alg": "RS256",
                "kid": kid,
                "n": _b64url_uint(numbers.n),
                "e": _b64url_uint(numbers.e),
            }
        ]
    }


def create_token(
    private_key,
    kid: str = "test-key-1",
    sub: str = "user-123",
    iss: str = ISSUER,
    aud: str = AUDIENCE,
    exp: int | None = None,
    azp: str | None = None,
) -> str:
    now = int(time.time())
    payload = {
        "sub": sub,
        "iss": iss,
        "aud": aud,
        "exp": exp if exp is not None else now + 3600,
        "iat": now,
    }
    if azp:
        payload["azp"] = azp
    return jwt.encode(payload, private_key, algorithm="RS256", headers={"kid": kid})
