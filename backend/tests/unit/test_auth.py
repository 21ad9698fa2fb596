import time

import jwt
import pytest
from fastapi import HTTPException

from socialsearch.infra import jwt as jwt_helper
from socialsearch.infra.auth import AuthenticatedUser, RequestIdentity, verify_access_jwt
from socialsearch.settings import settings


def _token(**overrides) -> str:
	now = int(time.time())
	body = {
		"iss": jwt_helper.ISSUER,
		"aud": jwt_helper.AUDIENCE,
		"iat": now,
		"exp": now + 60,
		"sub": "user-1",
	}
	body.update(overrides)
	return jwt.encode(body, settings.secret_key, algorithm="HS256")


def test_valid_token_yields_caller_id():
	user = verify_access_jwt(jwt_helper.encode_access("user-1"))

	assert user == AuthenticatedUser(id="user-1")
	assert RequestIdentity(user=user).current_user_id() == "user-1"


@pytest.mark.parametrize(
	"token",
	[
		_token(aud="someone-else"),
		_token(exp=int(time.time()) - 600),
		_token(sub=" "),
		jwt.encode({"sub": "user-1"}, "wrong-secret", algorithm="HS256"),
		"not-a-jwt",
	],
)
def test_invalid_tokens_are_rejected(token):
	with pytest.raises(HTTPException) as excinfo:
		verify_access_jwt(token)

	assert excinfo.value.status_code == 401
	assert excinfo.value.detail == "invalid_token"


def test_missing_identity_has_no_user_id():
	assert RequestIdentity().current_user_id() is None
