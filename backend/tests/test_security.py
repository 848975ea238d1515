"""Security tests: tokens, role checks, configuration guards."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi import HTTPException
from pydantic import ValidationError
from starlette.requests import Request

from stockledger.core.config import Settings, settings
from stockledger.core.rate_limit import actor_key
from stockledger.core.rbac import TokenData, UserRole, require_role
from stockledger.core.security import create_access_token, decode_access_token


# ============== Token Tests ==============

class TestAccessTokens:
    def test_round_trip_claims(self):
        token = create_access_token({"sub": "7", "username": "ana", "role": "lead"})
        payload = decode_access_token(token)
        assert payload["sub"] == "7"
        assert payload["role"] == "lead"
        assert "jti" in payload

    def test_expired_token_rejected(self):
        token = create_access_token({"sub": "7", "role": "lead"}, expires_delta=timedelta(seconds=-5))
        assert decode_access_token(token) is None

    def test_foreign_signature_rejected(self):
        token = jwt.encode(
            {"sub": "7", "role": "lead", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            "some-other-identity-provider-secret",
            algorithm="HS256",
        )
        assert decode_access_token(token) is None

    def test_token_without_exp_rejected(self):
        token = jwt.encode({"sub": "7", "role": "lead"}, settings.secret_key, algorithm=settings.algorithm)
        assert decode_access_token(token) is None

    def test_unique_jti(self):
        a = decode_access_token(create_access_token({"sub": "1", "role": "operator"}))
        b = decode_access_token(create_access_token({"sub": "1", "role": "operator"}))
        assert a["jti"] != b["jti"]


# ============== Role Tests ==============

class TestRequireRole:
    @pytest.mark.asyncio
    async def test_lead_passes_lead_check(self):
        checker = require_role(UserRole.LEAD)
        user = TokenData(user_id=1, username="lead", role=UserRole.LEAD)
        assert await checker(user) is user

    @pytest.mark.asyncio
    async def test_operator_blocked_from_lead(self):
        checker = require_role(UserRole.LEAD)
        with pytest.raises(HTTPException) as exc_info:
            await checker(TokenData(user_id=2, username="op", role=UserRole.OPERATOR))
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_lead_passes_operator_check(self):
        checker = require_role(UserRole.OPERATOR)
        user = TokenData(user_id=1, username="lead", role=UserRole.LEAD)
        assert await checker(user) is user


# ============== Settings Tests ==============

class TestSettings:
    def test_production_refuses_default_secret(self):
        with pytest.raises(ValidationError, match="default SECRET_KEY"):
            Settings(debug=False, secret_key="change-me-in-production")

    def test_negative_window_rejected(self):
        with pytest.raises(ValidationError):
            Settings(backdate_window_days=-1)

    def test_percent_out_of_range(self):
        with pytest.raises(ValidationError):
            Settings(low_stock_threshold_percent=1.5)

    def test_cors_origins_list(self):
        s = Settings(cors_origins="http://a.test, http://b.test")
        assert s.cors_origins_list == ["http://a.test", "http://b.test"]


# ============== Rate Limit Key Tests ==============

class TestActorKey:
    def _request(self, headers):
        scope = {
            "type": "http",
            "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
            "client": ("10.0.0.9", 5000),
        }
        return Request(scope)

    def test_keyed_by_actor(self):
        token = create_access_token({"sub": "7", "role": "operator"})
        assert actor_key(self._request({"Authorization": f"Bearer {token}"})) == "actor:7"

    def test_invalid_token_falls_back_to_address(self):
        assert actor_key(self._request({"Authorization": "Bearer nope"})) == "10.0.0.9"

    def test_anonymous_keyed_by_address(self):
        assert actor_key(self._request({})) == "10.0.0.9"
