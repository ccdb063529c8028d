#!/usr/bin/env python3
"""Unit tests for controller token management.

Tests cover:
    - Token caching and expiration buffer
    - Configuration from environment variables
    - Password-grant token fetch
    - Failure handling (bad credentials, retries)
"""

import hashlib
import sys
import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

sys.path.insert(0, str(__file__).rsplit("/tests", 1)[0])
from src.wlan.api.auth import TOKEN_PATH, CachedToken, ControllerTokenManager
from src.wlan.api.exceptions import (
    ConfigurationError,
    InvalidCredentialsError,
    TokenFetchError,
)


def make_session(status: int, json_body=None, text: str = ""):
    """Build an aiohttp.ClientSession mock answering one POST."""
    mock_response = MagicMock()
    mock_response.status = status
    mock_response.json = AsyncMock(return_value=json_body or {})
    mock_response.text = AsyncMock(return_value=text)
    mock_response.__aenter__ = AsyncMock(return_value=mock_response)
    mock_response.__aexit__ = AsyncMock(return_value=None)

    mock_session = MagicMock()
    mock_session.post = MagicMock(return_value=mock_response)
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=None)
    return mock_session


# ============================================
# CachedToken Tests
# ============================================

class TestCachedToken:
    """Test the CachedToken dataclass."""

    def test_not_expired_when_new(self):
        token = CachedToken(access_token="abc", expires_at=time.time() + 3600)
        assert not token.is_expired
        assert token.time_remaining > 3500

    def test_expired_when_past(self):
        token = CachedToken(access_token="abc", expires_at=time.time() - 100)
        assert token.is_expired
        assert token.time_remaining == 0

    def test_expired_within_buffer(self):
        """7200s TTL caps the buffer at 300s, so 200s left counts as expired."""
        token = CachedToken(
            access_token="abc",
            expires_at=time.time() + 200,
            expires_in=7200,
        )
        assert token.is_expired

    def test_token_id_never_exposes_token(self):
        token = CachedToken(access_token="controller_secret", expires_at=time.time() + 3600)
        assert token.token_id == hashlib.sha256(b"controller_secret").hexdigest()[:8]
        assert "controller" not in token.token_id


# ============================================
# ControllerTokenManager Tests
# ============================================

class TestControllerTokenManager:
    """Test the ControllerTokenManager class."""

    @pytest.fixture
    def env_vars(self, monkeypatch):
        monkeypatch.setenv("CONTROLLER_USERNAME", "admin")
        monkeypatch.setenv("CONTROLLER_PASSWORD", "s3cret")
        monkeypatch.setenv("CONTROLLER_BASE_URL", "https://ctrl.example.com:5825/")
        monkeypatch.delenv("CONTROLLER_TOKEN_URL", raising=False)
        monkeypatch.delenv("CONTROLLER_VERIFY_SSL", raising=False)

    def test_missing_env_vars_raises(self, monkeypatch):
        for name in (
            "CONTROLLER_USERNAME",
            "CONTROLLER_PASSWORD",
            "CONTROLLER_BASE_URL",
            "CONTROLLER_TOKEN_URL",
        ):
            monkeypatch.delenv(name, raising=False)

        with pytest.raises(ConfigurationError) as exc:
            ControllerTokenManager()

        assert "CONTROLLER_USERNAME" in exc.value.details["missing_keys"]
        assert "CONTROLLER_BASE_URL" in exc.value.details["missing_keys"]

    def test_token_url_defaults_under_base_url(self, env_vars):
        manager = ControllerTokenManager()
        assert manager.token_url == f"https://ctrl.example.com:5825{TOKEN_PATH}"
        assert manager.verify_ssl is True

    def test_verify_ssl_can_be_disabled(self, env_vars, monkeypatch):
        monkeypatch.setenv("CONTROLLER_VERIFY_SSL", "false")
        assert ControllerTokenManager().verify_ssl is False

    def test_explicit_credentials(self, monkeypatch):
        monkeypatch.delenv("CONTROLLER_USERNAME", raising=False)

        manager = ControllerTokenManager(
            username="operator",
            password="pw",
            token_url="https://other.example.com/token",
        )

        assert manager.username == "operator"
        assert manager.token_url == "https://other.example.com/token"

    @pytest.mark.asyncio
    async def test_get_token_uses_password_grant(self, env_vars):
        manager = ControllerTokenManager()
        session = make_session(200, {"access_token": "tok_123", "expires_in": 3600})

        with patch("aiohttp.ClientSession", return_value=session):
            token = await manager.get_token()

        assert token == "tok_123"
        _, kwargs = session.post.call_args
        assert kwargs["json"] == {
            "grantType": "password",
            "userId": "admin",
            "password": "s3cret",
        }

    @pytest.mark.asyncio
    async def test_get_token_returns_cached(self, env_vars):
        manager = ControllerTokenManager()
        manager._cached_token = CachedToken(
            access_token="cached_token",
            expires_at=time.time() + 3600,
        )

        with patch("aiohttp.ClientSession") as mock_session_cls:
            token = await manager.get_token()
            mock_session_cls.assert_not_called()

        assert token == "cached_token"

    @pytest.mark.asyncio
    async def test_invalid_credentials_not_retried(self, env_vars):
        manager = ControllerTokenManager()
        session = make_session(401, text="bad user")

        with patch("aiohttp.ClientSession", return_value=session):
            with pytest.raises(InvalidCredentialsError):
                await manager.get_token()

        assert session.post.call_count == 1

    @pytest.mark.asyncio
    async def test_server_errors_retried_then_raise(self, env_vars):
        manager = ControllerTokenManager()
        session = make_session(503, text="unavailable")

        with patch("aiohttp.ClientSession", return_value=session), \
                patch("asyncio.sleep", new=AsyncMock()):
            with pytest.raises(TokenFetchError) as exc:
                await manager.get_token()

        assert session.post.call_count == 3
        assert exc.value.details["attempts"] == 3

    def test_invalidate_clears_cache(self, env_vars):
        manager = ControllerTokenManager()
        manager._cached_token = CachedToken(access_token="t", expires_at=time.time() + 3600)

        manager.invalidate()

        assert manager._cached_token is None
        assert manager.token_info is None

    def test_token_info_hides_token(self, env_vars):
        manager = ControllerTokenManager()
        manager._cached_token = CachedToken(
            access_token="a_very_long_controller_token",
            expires_at=time.time() + 3600,
        )

        info = manager.token_info

        assert not info["is_expired"]
        assert "a_very_long" not in str(info)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
