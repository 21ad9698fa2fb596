"""Access token helpers for the search API.

Tokens are HS256, issued by the account service for the web client. Only the
subject is needed to run a search, so decoding yields a small typed claim set.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict

import jwt
from jwt import InvalidTokenError

from socialsearch.settings import settings


ISSUER = "social-api"
AUDIENCE = "social-web"
REQUIRED_CLAIMS = ["exp", "iat", "iss", "aud", "sub"]


@dataclass(slots=True, frozen=True)
class AccessClaims:
    subject: str


def encode_access(subject: str, *, ttl_seconds: int = 900) -> str:
    """Mint an access token for `subject`; used by tests and local tooling."""
    now = int(time.time())
    body: Dict[str, Any] = {"iss": ISSUER, "aud": AUDIENCE, "iat": now, "exp": now + ttl_seconds, "sub": subject}
    return jwt.encode(body, settings.secret_key, algorithm="HS256")


def decode_access(token: str) -> AccessClaims:
    """Validate signature, issuer, audience and expiry.

    Raises jwt.InvalidTokenError subclasses on failure.
    """
    payload = jwt.decode(
        token,
        settings.secret_key,
        algorithms=["HS256"],
        audience=AUDIENCE,
        issuer=ISSUER,
        leeway=5,
        options={"require": REQUIRED_CLAIMS},
    )
    subject = str(payload.get("sub") or "").strip()
    if not subject:
        raise InvalidTokenError("missing_claim:sub")
    return AccessClaims(subject=subject)
