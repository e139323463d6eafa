import time

import jwt
import pytest

from diskgate.auth.tokens import verify_upload_token
from diskgate.errors import InvalidToken

from conftest import JWT_SECRET, make_token


def test_valid_token_yields_all_claims():
    token = make_token({"target": "avatar", "user": "42", "meta": {"w": 10}})
    claims = verify_upload_token(token, JWT_SECRET, ["HS256"])
    dumped = claims.model_dump()
    assert dumped["target"] == "avatar"
    assert dumped["user"] == "42"
    assert dumped["meta"] == {"w": 10}
    assert claims.exp > time.time()


def test_expired_token():
    token = make_token({"target": "avatar", "exp": int(time.time()) - 10})
    with pytest.raises(InvalidToken) as exc:
        verify_upload_token(token, JWT_SECRET, ["HS256"])
    assert exc.value.reason == "expired"
    assert exc.value.status_code == 401


def test_leeway_extends_validity():
    token = make_token({"target": "avatar", "exp": int(time.time()) - 10})
    claims = verify_upload_token(token, JWT_SECRET, ["HS256"], leeway=60)
    assert claims.model_dump()["target"] == "avatar"


def test_bad_signature():
    token = make_token(secret="other-secret")
    with pytest.raises(InvalidToken) as exc:
        verify_upload_token(token, JWT_SECRET, ["HS256"])
    assert exc.value.reason == "signature"


def test_malformed_token():
    with pytest.raises(InvalidToken) as exc:
        verify_upload_token("abc.def", JWT_SECRET, ["HS256"])
    assert exc.value.reason == "malformed"


def test_unexpected_algorithm_is_rejected():
    token = jwt.encode({"target": "x", "exp": int(time.time()) + 60}, JWT_SECRET, algorithm="HS512")
    with pytest.raises(InvalidToken):
        verify_upload_token(token, JWT_SECRET, ["HS256"])


def test_token_without_expiry_is_rejected_by_default():
    token = make_token({"target": "forever"}, ttl=None)
    with pytest.raises(InvalidToken) as exc:
        verify_upload_token(token, JWT_SECRET, ["HS256"], require_exp=True)
    assert exc.value.reason == "malformed"


def test_token_without_expiry_when_not_required():
    token = make_token({"target": "forever"}, ttl=None)
    claims = verify_upload_token(token, JWT_SECRET, ["HS256"], require_exp=False)
    assert claims.exp is None


def test_equal_claims_have_equal_admission_keys():
    exp = int(time.time()) + 60
    a = verify_upload_token(make_token({"a": 1, "b": [1, 2], "exp": exp}), JWT_SECRET, ["HS256"])
    b = verify_upload_token(make_token({"b": [1, 2], "exp": exp, "a": 1}), JWT_SECRET, ["HS256"])
    c = verify_upload_token(make_token({"a": 2, "b": [1, 2], "exp": exp}), JWT_SECRET, ["HS256"])
    assert a is not b
    assert a.admission_key() == b.admission_key()
    assert a.admission_key() != c.admission_key()
