"""Authentication helpers for FastAPI endpoints.

- Bearer JWTs (HS256) are verified with settings.secret_key.
- Dev headers (X-User-Id) are only respected in development.
- Search routes resolve identity optionally: a missing identity is a policy
  outcome handled by the search domain rather than a 401.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import InvalidTokenError

from socialsearch.infra import jwt as jwt_helper
from socialsearch.settings import settings


@dataclass(slots=True, frozen=True)
class AuthenticatedUser:
	id: str


@dataclass(slots=True, frozen=True)
class RequestIdentity:
	"""Identity provider bound to a single request."""

	user: Optional[AuthenticatedUser] = None

	def current_user_id(self) -> Optional[str]:
		if self.user is None:
			return None
		return str(self.user.id) or None


_bearer_scheme = HTTPBearer(auto_error=False)


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode and validate an access JWT and return the caller."""
	try:
		claims = jwt_helper.decode_access(token)
	except InvalidTokenError:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
	return AuthenticatedUser(id=claims.subject)


async def get_optional_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[AuthenticatedUser]:
	"""Resolve the caller when credentials are presented, else None.

	An invalid bearer token is still rejected with 401.
	"""
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)

	# dev only: local tools pass the user id directly
	if settings.is_dev() and x_user_id and x_user_id.strip():
		return AuthenticatedUser(id=x_user_id.strip())
	return None


async def get_request_identity(
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> RequestIdentity:
	return RequestIdentity(user=user)
