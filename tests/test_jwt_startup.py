"""
tests/test_jwt_startup - JWT Secret Validation at Startup
==========================================================
The API must refuse to start when JWT_SECRET is missing, blank, too short,
or a known weak default.
"""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from tekron.api import deps


class TestJWTSecretValidation:
    """Prove that _load_jwt_secret() rejects bad secrets and accepts good ones."""

    def test_rejects_missing_secret(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("JWT_SECRET", None)
            with pytest.raises(RuntimeError, match="JWT_SECRET environment variable is not set"):
                deps._load_jwt_secret()

    def test_rejects_empty_secret(self):
        with patch.dict(os.environ, {"JWT_SECRET": ""}):
            with pytest.raises(RuntimeError, match="JWT_SECRET environment variable is not set"):
                deps._load_jwt_secret()

    def test_rejects_known_weak_default(self):
        with patch.dict(os.environ, {"JWT_SECRET": "tekron-dev-secret-change-me"}):
            with pytest.raises(RuntimeError, match="known weak default"):
                deps._load_jwt_secret()

    def test_rejects_change_me_variant(self):
        with patch.dict(os.environ, {"JWT_SECRET": "change-me"}):
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


class TestTokenDecoding:
    def test_round_trip_claims(self):
        from conftest import make_token

        from tekron.database.models import Role

        payload = deps.decode_token(make_token(7, Role.VOLUNTEER))
        assert payload["sub"] == 7
        assert payload["role"] is Role.VOLUNTEER
        assert len(payload["jti"]) == 32

    def test_expired_token_rejected(self):
        import jwt

        from tekron.errors import Unauthorized

        token = jwt.encode(
            {"sub": "1", "role": "admin", "jti": "x", "exp": 1},
            deps.JWT_SECRET,
            algorithm=deps.JWT_ALGORITHM,
        )
        with pytest.raises(Unauthorized):
            deps.decode_token(token)

    def test_unknown_role_rejected(self):
        import jwt

        from tekron.errors import Unauthorized

        token = jwt.encode(
            {"sub": "1", "role": "janitor", "jti": "x", "exp": 4_102_444_800},
            deps.JWT_SECRET,
            algorithm=deps.JWT_ALGORITHM,
        )
        with pytest.raises(Unauthorized):
            deps.decode_token(token)

    def test_missing_claim_rejected(self):
        import jwt

        from tekron.errors import Unauthorized

        token = jwt.encode({"sub": "1", "exp": 4_102_444_800}, deps.JWT_SECRET, algorithm=deps.JWT_ALGORITHM)
        with pytest.raises(Unauthorized):
            deps.decode_token(token)
