from datetime import timedelta
from unittest import mock

import jwt
import pytest
from fastapi import HTTPException
from sqlalchemy.exc import OperationalError

from socialnet.config import settings
from socialnet.database import store_errors
from socialnet.utils import create_access_token, hash_password, verify_access_token, verify_password


def test_password_hashing():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)


def test_token_roundtrip():
    token = create_access_token(data={"sub": "42"})
    payload = verify_access_token(token)
    assert payload["sub"] == "42"
    assert payload["exp"] > payload["iat"]


def test_expired_token_is_rejected():
    token = create_access_token(data={"sub": "42"}, expires_delta=timedelta(seconds=-1))
    assert verify_access_token(token) is None


def test_token_signed_with_other_key_is_rejected():
    token = jwt.encode({"sub": "42"}, "not-" + settings.jwt_secret, algorithm=settings.jwt_algorithm)
    assert verify_access_token(token) is None
    assert verify_access_token("not.a.token") is None


def test_store_errors_rolls_back_and_hides_detail():
    db = mock.Mock()
    with pytest.raises(HTTPException) as excinfo:
        with store_errors(db, "fetching posts"):
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))
    assert excinfo.value.status_code == 500
    assert excinfo.value.detail == "Server error while fetching posts"
    db.rollback.assert_called_once()


def test_store_errors_passes_http_errors_through():
    db = mock.Mock()
    with pytest.raises(HTTPException) as excinfo:
        with store_errors(db, "fetching posts"):
            raise HTTPException(status_code=404, detail="Post not found")
    assert excinfo.value.status_code == 404
    db.rollback.assert_not_called()
