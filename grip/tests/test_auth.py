"""
Tests for grip.auth

Pure unit tests: no network.
"""
import base64
from unittest.mock import MagicMock

import jwt
import pytest

from grip.auth import AuthCredential, BasicAuth, JwtAuth, sign_hs256

KEY = "a-test-signing-key-long-enough-for-hs256"


class TestBasicAuth:
    def test_render_header(self):
        header = BasicAuth("user", "pass").render_header()
        assert header == "Basic " + base64.b64encode(b"user:pass").decode("ascii")

    def test_render_header_utf8(self):
        header = BasicAuth("usér", "pass").render_header()
        assert base64.b64decode(header[len("Basic "):]) == "usér:pass".encode("utf-8")

    def test_repr_hides_password(self):
        assert "pass" not in repr(BasicAuth("user", "secret-pass"))

    def test_satisfies_protocol(self):
        assert isinstance(BasicAuth("u", "p"), AuthCredential)


class TestJwtAuth:
    def test_token_renders_bearer(self):
        assert JwtAuth(token="token").render_header() == "Bearer token"

    def test_token_never_signs(self):
        signer = MagicMock()
        JwtAuth(token="token", signer=signer).render_header()
        signer.assert_not_called()

    def test_claim_is_signed_on_render_only(self):
        signer = MagicMock(return_value="abc")
        auth = JwtAuth(claim={"iss": "iss"}, key="key", signer=signer)
        signer.assert_not_called()

        assert auth.render_header() == "Bearer abc"
        signer.assert_called_once_with({"iss": "iss"}, "key")

    def test_default_signer_produces_verifiable_token(self):
        header = JwtAuth(claim={"iss": "realm"}, key=KEY).render_header()
        token = header[len("Bearer "):]

        assert jwt.decode(token, KEY, algorithms=["HS256"]) == {"iss": "realm"}

    def test_signing_is_deterministic(self):
        auth = JwtAuth(claim={"iss": "realm"}, key=KEY)
        assert auth.render_header() == auth.render_header()
        assert sign_hs256({"iss": "realm"}, KEY) == sign_hs256({"iss": "realm"}, KEY)

    def test_claim_is_copied(self):
        claim = {"iss": "realm"}
        auth = JwtAuth(claim=claim, key=KEY)
        claim["iss"] = "other"
        assert auth.claim == {"iss": "realm"}

    def test_neither_mode_raises(self):
        with pytest.raises(ValueError, match="requires"):
            JwtAuth()

    def test_claim_without_key_raises(self):
        with pytest.raises(ValueError, match="requires"):
            JwtAuth(claim={"iss": "iss"})

    def test_both_modes_raise(self):
        with pytest.raises(ValueError, match="not both"):
            JwtAuth(claim={"iss": "iss"}, key="key", token="token")
