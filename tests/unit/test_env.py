import pytest
from pydantic import ValidationError

from virtuals_acp_plugin.env import EnvSettings

TEST_AGENT_ADDRESS = "0xABCDEF1234567890123456789012345678901234"


class TestEnvSettings:
    def test_should_use_defaults(self, monkeypatch):
        """Should fall back to the default retry count and timeout"""
        monkeypatch.delenv("ACP_MAX_CONNECT_RETRIES", raising=False)
        monkeypatch.delenv("ACP_DELEGATION_TIMEOUT_SECONDS", raising=False)

        settings = EnvSettings(_env_file=None)

        assert settings.ACP_MAX_CONNECT_RETRIES == 3
        assert settings.ACP_DELEGATION_TIMEOUT_SECONDS == 300.0

    def test_should_read_environment(self, monkeypatch):
        """Should load values from environment variables"""
        monkeypatch.setenv("ACP_ENTITY_ID", "17")
        monkeypatch.setenv("ACP_AGENT_WALLET_ADDRESS", TEST_AGENT_ADDRESS)

        settings = EnvSettings(_env_file=None)

        assert settings.ACP_ENTITY_ID == 17
        assert settings.ACP_AGENT_WALLET_ADDRESS == TEST_AGENT_ADDRESS.lower()

    def test_should_reject_0x_private_key(self):
        """Should refuse private keys with a 0x prefix"""
        with pytest.raises(ValidationError, match="must not start with '0x'"):
            EnvSettings(_env_file=None, ACP_WALLET_PRIVATE_KEY="0x" + "ab" * 32)

    def test_should_treat_blank_values_as_missing(self):
        """Should map blank strings to None"""
        settings = EnvSettings(
            _env_file=None, ACP_WALLET_PRIVATE_KEY="  ", ACP_AGENT_WALLET_ADDRESS=""
        )

        assert settings.ACP_WALLET_PRIVATE_KEY is None
        assert settings.ACP_AGENT_WALLET_ADDRESS is None

    @pytest.mark.parametrize(
        "address",
        ["1234567890123456789012345678901234567890", "0x1234", "0xZZZZ567890123456789012345678901234567890"],
    )
    def test_should_reject_invalid_wallet_address(self, address):
        """Should refuse malformed wallet addresses"""
        with pytest.raises(ValidationError):
            EnvSettings(_env_file=None, ACP_AGENT_WALLET_ADDRESS=address)

    def test_should_reject_invalid_retry_count(self):
        """Should require at least one connection attempt"""
        with pytest.raises(ValidationError):
            EnvSettings(_env_file=None, ACP_MAX_CONNECT_RETRIES=0)

    def test_should_reject_non_positive_timeout(self):
        """Should require a positive delegation timeout"""
        with pytest.raises(ValidationError):
            EnvSettings(_env_file=None, ACP_DELEGATION_TIMEOUT_SECONDS=0)
