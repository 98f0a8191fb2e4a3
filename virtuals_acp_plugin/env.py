from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator, ConfigDict

DEFAULT_DELEGATION_TIMEOUT_SECONDS = 300.0


class EnvSettings(BaseSettings):
    """Environment settings for the ACP plugin.

    Automatically loads values from .env files and environment variables.
    Values supplied by the agent runtime take precedence, see
    ``ACPService.load_settings``.
    """

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # Wallet config
    ACP_WALLET_PRIVATE_KEY: Optional[str] = None
    ACP_AGENT_WALLET_ADDRESS: Optional[str] = None

    # Entity ID
    ACP_ENTITY_ID: Optional[int] = None

    # Service behaviour
    ACP_MAX_CONNECT_RETRIES: int = 3
    ACP_DELEGATION_TIMEOUT_SECONDS: float = DEFAULT_DELEGATION_TIMEOUT_SECONDS

    @field_validator("ACP_WALLET_PRIVATE_KEY")
    @classmethod
    def strip_0x_prefix(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            return None
        if v.startswith("0x"):
            raise ValueError("ACP_WALLET_PRIVATE_KEY must not start with '0x'. Please remove it.")
        return v

    @field_validator("ACP_AGENT_WALLET_ADDRESS")
    @classmethod
    def validate_wallet_address(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None

        v = v.strip()
        if not v:
            return None

        if not v.startswith("0x") or len(v) != 42:
            raise ValueError("Wallet address must start with '0x' and be 42 characters long.")

        # Validate hex characters
        try:
            int(v, 16)
        except ValueError:
            raise ValueError("Wallet address must contain only valid hexadecimal characters.")

        return v.lower()

    @field_validator("ACP_MAX_CONNECT_RETRIES")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 1:
            raise ValueError("ACP_MAX_CONNECT_RETRIES must be at least 1.")
        return v

    @field_validator("ACP_DELEGATION_TIMEOUT_SECONDS")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("ACP_DELEGATION_TIMEOUT_SECONDS must be positive.")
        return v
