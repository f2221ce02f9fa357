from datetime import timedelta

import pytest
from fastapi import HTTPException

from app.core.security import create_access_token, decode_access_token, get_password_hash, verify_password


def test_password_hash_round_trip():
    password_hash = get_password_hash("s3cret!")
    assert password_hash != "s3cret!"
    assert verify_password("s3cret!", password_hash)
    assert not verify_password("wrong", password_hash)


def test_token_carries_subject():
    token = create_access_token({"sub": "user-1"})
    assert decode_access_token(token)["sub"] == "user-1"


def test_expired_token_rejected():
    token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(seconds=-1))
    with pytest.raises(HTTPException) as exc:
        decode_access_token(token)
    assert exc.value.status_code == 401


def test_garbage_token_rejected():
    with pytest.raises(HTTPException):
        decode_access_token("not.a.token")
