import pytest
from fastapi import HTTPException

from dealrate.infra import jwt as jwt_helper
from dealrate.infra.auth import AuthenticatedUser, verify_access_jwt


def test_verify_access_jwt_keeps_subject_and_name_only():
	token = jwt_helper.encode_access({"sub": " alice ", "name": "Alice", "sid": "session-1"})

	user = verify_access_jwt(token)

	assert user == AuthenticatedUser(id="alice", name="Alice")
	assert not hasattr(user, "session_id")


def test_verify_access_jwt_falls_back_to_username():
	token = jwt_helper.encode_access({"sub": "bob", "username": "bobby"})

	assert verify_access_jwt(token).name == "bobby"


def test_verify_access_jwt_rejects_expired_token():
	token = jwt_helper.encode_access({"sub": "alice"}, ttl_seconds=-60)

	with pytest.raises(HTTPException) as exc_info:
		verify_access_jwt(token)

	assert exc_info.value.status_code == 401
	assert exc_info.value.detail == "invalid_token"
