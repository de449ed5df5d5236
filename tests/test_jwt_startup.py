"""
tests/test_jwt_startup — JWT Secret Validation at Startup
==========================================================
The API must refuse to start when JWT_SECRET is missing, blank, too
short, or a known weak default.
"""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from locova.api import deps


class TestJWTSecretValidation:
    """Prove that _load_jwt_secret() rejects bad secrets and accepts good ones."""

    def test_rejects_missing_secret(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("JWT_SECRET", None)
            with pytest.raises(RuntimeError, match="JWT_SECRET environment variable is not set"):
                deps._load_jwt_secret()

    def test_rejects_empty_secret(self):
        with patch.dict(os.environ, {"JWT_SECRET": ""}):
            with pytest.raises(RuntimeError, match="not set"):
                deps._load_jwt_secret()

    @pytest.mark.parametrize("weak", ["locova-dev-secret-change-me", "change-me", "secret"])
    def test_rejects_known_weak_default(self, weak):
        with patch.dict(os.environ, {"JWT_SECRET": weak}):
            with pytest.raises(RuntimeError, match="known weak default"):
                deps._load_jwt_secret()

    def test_rejects_short_secret(self):
        with patch.dict(os.environ, {"JWT_SECRET": "tooshort"}):
            with pytest.raises(RuntimeError, match="too short"):
                deps._load_jwt_secret()

    def test_accepts_strong_secret(self):
        good_secret = "a" * 64
        with patch.dict(os.environ, {"JWT_SECRET": good_secret}):
            assert deps._load_jwt_secret() == good_secret


class TestBearerTokens:
    def test_missing_header_rejected(self):
        with pytest.raises(deps.HTTPException) as exc_info:
            deps.get_current_user_id(None)
        assert exc_info.value.status_code == 401

    def test_optional_user_is_none_without_header(self):
        assert deps.get_optional_user_id(None) is None

    def test_bad_signature_rejected(self):
        import jwt

        token = jwt.encode({"sub": "u1"}, "z" * 40, algorithm=deps.JWT_ALGORITHM)
        with pytest.raises(deps.HTTPException) as exc_info:
            deps.get_optional_user_id(f"Bearer {token}")
        assert exc_info.value.status_code == 401

    def test_token_without_subject_rejected(self):
        import jwt

        token = jwt.encode({"role": "x"}, deps.JWT_SECRET, algorithm=deps.JWT_ALGORITHM)
        with pytest.raises(deps.HTTPException):
            deps.get_current_user_id(f"Bearer {token}")

    def test_subject_is_user_id(self):
        import jwt

        token = jwt.encode({"sub": "u1"}, deps.JWT_SECRET, algorithm=deps.JWT_ALGORITHM)
        assert deps.get_current_user_id(f"Bearer {token}") == "u1"
