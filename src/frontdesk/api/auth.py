"""OIDC bearer authentication.

Provides:
- verify_token(): Validates the JWT against the provider's JWKS and returns its subject
- get_current_user(): FastAPI dependency resolving the subject to a users row (id, role, company)
"""

from __future__ import annotations

import os
import threading
import time
from dataclasses import dataclass
from typing import Any

import jwt
import requests
from fastapi import HTTPException, Request

from frontdesk.observability.logging import get_logger
from frontdesk.observability.redaction import safe_log_context

logger = get_logger(__name__)

# JWKS cache with TTL
_jwks_cache: dict[str, Any] | None = None
_jwks_cache_time: float = 0
_jwks_cache_lock = threading.Lock()
_JWKS_CACHE_TTL = 300  # 5 minutes


@dataclass
class CurrentUser:
    """Authenticated caller as stored in the users table."""

    id: str
    external_subject: str
    email: str | None
    name: str | None
    role: str
    company_name: str | None = None


@dataclass(frozen=True)
class OIDCSettings:
    issuer: str | None
    audience: str | None
    jwks_url: str | None
    authorized_parties: list[str] | None

    @property
    def configured(self) -> bool:
        return bool(self.issuer and self.audience and self.jwks_url)


def _get_settings() -> OIDCSettings:
    """Load OIDC settings from environment."""
    raw = os.environ.get("OIDC_AUTHORIZED_PARTIES", "")
    parties = [p.strip() for p in raw.split(",") if p.strip()] or None
    return OIDCSettings(
        issuer=os.environ.get("OIDC_ISSUER"),
        audience=os.environ.get("OIDC_AUDIENCE"),
        jwks_url=os.environ.get("OIDC_JWKS_URL"),
        authorized_parties=parties,
    )


def _fetch_jwks(jwks_url: str) -> dict[str, Any]:
    resp = requests.get(jwks_url, timeout=10)
    resp.raise_for_status()
    return resp.json()


def _get_jwks(jwks_url: str, force_refresh: bool = False) -> dict[str, Any]:
    """Return the cached JWKS, fetching it when stale or when forced.

    The fetch runs outside the lock; concurrent refreshes race harmlessly
    and the last one wins.
    """
    global _jwks_cache, _jwks_cache_time

    with _jwks_cache_lock:
        cached, fetched_at = _jwks_cache, _jwks_cache_time
    if cached is not None and not force_refresh and time.time() - fetched_at < _JWKS_CACHE_TTL:
        return cached

    try:
        jwks = _fetch_jwks(jwks_url)
    except requests.RequestException as exc:
        logger.warning(
            "JWKS fetch failed",
            extra={"extra_fields": safe_log_context(error=str(exc))},
        )
        raise HTTPException(status_code=503, detail="Auth temporarily unavailable")

    with _jwks_cache_lock:
        _jwks_cache, _jwks_cache_time = jwks, time.time()
    return jwks


def _find_key(jwks: dict[str, Any], kid: str) -> dict[str, Any] | None:
    return next((key for key in jwks.get("keys", []) if key.get("kid") == kid), None)


def _decode(token: str, key_data: dict[str, Any], settings: OIDCSettings) -> dict[str, Any]:
    try:
        public_key = jwt.algorithms.RSAAlgorithm.from_jwk(key_data)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid token")

    return jwt.decode(
        token,
        public_key,
        algorithms=["RS256"],
        issuer=settings.issuer,
        audience=settings.audience,
        options={"require": ["exp", "iss", "aud", "sub"]},
    )


def verify_token(token: str) -> str:
    """Verify a JWT and return its subject claim.

    An unknown kid or a bad signature triggers one JWKS refresh, since the
    provider may have rotated its keys.

    Raises:
        HTTPException: 401 if the token is invalid, 503 if the JWKS is unreachable.
    """
    settings = _get_settings()
    if not settings.configured:
        raise HTTPException(status_code=401, detail="OIDC not configured")

    try:
        kid = jwt.get_unverified_header(token).get("kid")
    except jwt.exceptions.DecodeError:
        raise HTTPException(status_code=401, detail="Invalid token")
    if not kid:
        raise HTTPException(status_code=401, detail="Invalid token")

    key_data = _find_key(_get_jwks(settings.jwks_url), kid)
    if key_data is None:
        key_data = _find_key(_get_jwks(settings.jwks_url, force_refresh=True), kid)
    if key_data is None:
        raise HTTPException(status_code=401, detail="Invalid token")

    try:
        try:
            payload = _decode(token, key_data, settings)
        except jwt.InvalidSignatureError:
            key_data = _find_key(_get_jwks(settings.jwks_url, force_refresh=True), kid)
            if key_data is None:
                raise HTTPException(status_code=401, detail="Invalid token")
            payload = _decode(token, key_data, settings)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    if settings.authorized_parties and "azp" in payload:
        if payload["azp"] not in settings.authorized_parties:
            raise HTTPException(status_code=401, detail="Invalid token")

    sub = payload.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="Invalid token")
    return sub


def _extract_bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid authorization header")

    return parts[1]


def _get_user_from_db(external_subject: str) -> CurrentUser | None:
    """Lookup user by external_subject (OIDC sub claim)."""
    from frontdesk.infra.db import txn
    from frontdesk.infra.repositories import users_repository

    with txn() as cur:
        row = users_repository.get_user_by_subject(cur, external_subject)
    if row is None:
        return None
    return CurrentUser(
        id=row["id"],
        external_subject=row["external_subject"],
        email=row["email"],
        name=row["name"],
        role=row["role"],
        company_name=row["company_name"],
    )


def get_current_user(request: Request) -> CurrentUser:
    """FastAPI dependency: get authenticated user.

    Raises:
        HTTPException: 401 if token invalid/missing, 403 if user not found.
    """
    token = _extract_bearer_token(request)
    sub = verify_token(token)

    user = _get_user_from_db(sub)
    if user is None:
        raise HTTPException(status_code=403, detail="User not found")

    return user
