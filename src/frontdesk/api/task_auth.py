"""Authentication for internal task endpoints on the worker app.

Task calls (an external scheduler or an operator triggering a job) carry a
Google-signed OIDC token. Locally, with TASKS_OIDC_AUDIENCE set to the
local audience, the X-Internal-Task-Secret header is accepted instead.
"""

from __future__ import annotations

import base64
import hmac
import json
import os

from fastapi import Request
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from frontdesk.observability.logging import get_logger
from frontdesk.observability.redaction import safe_log_context

logger = get_logger(__name__)

LOCAL_DEV_AUDIENCE = "frontdesk-tasks-local"
INTERNAL_SECRET_HEADER = "X-Internal-Task-Secret"


def _unverified_claim(token: str, claim: str) -> str | None:
    """Read one claim without verifying the signature - for failure logs only."""
    try:
        segment = token.split(".")[1]
        segment += "=" * (-len(segment) % 4)
        value = json.loads(base64.urlsafe_b64decode(segment)).get(claim)
        return str(value) if value is not None else None
    except Exception:
        return None


def extract_bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    return auth_header[len("Bearer "):]


def verify_task_oidc(token: str) -> bool:
    """Verify a Google-signed OIDC token for TASKS_OIDC_AUDIENCE.

    Fails closed when the audience is not configured. When
    TASKS_OIDC_SERVICE_ACCOUNT is set the token's email must match it.
    """
    if not token:
        return False

    audience = os.environ.get("TASKS_OIDC_AUDIENCE")
    if not audience:
        logger.error(
            "TASKS_OIDC_AUDIENCE not configured - fail closed",
            extra={"extra_fields": safe_log_context(reason="missing_audience_env")},
        )
        return False

    try:
        claims = id_token.verify_oauth2_token(token, google_requests.Request(), audience=audience)
    except ValueError as e:
        logger.warning(
            "task OIDC token verification failed",
            extra={
                "extra_fields": safe_log_context(
                    error=str(e),
                    expected_audience=audience,
                    received_audience=_unverified_claim(token, "aud"),
                )
            },
        )
        return False

    expected_email = os.environ.get("TASKS_OIDC_SERVICE_ACCOUNT")
    if expected_email and claims.get("email", "") != expected_email:
        logger.warning(
            "task OIDC service account mismatch",
            extra={
                "extra_fields": safe_log_context(
                    expected_email=expected_email,
                    received_email=claims.get("email", ""),
                )
            },
        )
        return False

    return True


def verify_task_auth(request: Request) -> bool:
    """True when the request carries valid task credentials."""
    if os.environ.get("TASKS_OIDC_AUDIENCE", "") == LOCAL_DEV_AUDIENCE:
        secret = os.environ.get("INTERNAL_TASK_SECRET", "")
        presented = request.headers.get(INTERNAL_SECRET_HEADER, "")
        if secret and hmac.compare_digest(presented.encode(), secret.encode()):
            logger.info(
                "task auth via internal secret (local dev)",
                extra={"extra_fields": safe_log_context(auth_method="internal_secret")},
            )
            return True

    token = extract_bearer_token(request)
    if not token:
        logger.warning(
            "task auth failed: missing Bearer token",
            extra={"extra_fields": safe_log_context(reason="missing_bearer_token")},
        )
        return False
    return verify_task_oidc(token)
