import uuid
from typing import TYPE_CHECKING, Optional

from eth_account import Account
from web3 import Web3

from virtuals_acp.configs.configs import ACPContractConfig, BASE_MAINNET_CONFIG_V2
from virtuals_acp.contract_clients.contract_client_v2 import ACPContractClientV2

if TYPE_CHECKING:
    from virtuals_acp_plugin.runtime import AgentRuntime


def get_acp_config() -> ACPContractConfig:
    """ACP contract configuration (only V2 is supported)."""
    return BASE_MAINNET_CONFIG_V2


def create_acp_contract_client(
    wallet_private_key: str,
    entity_id: int,
    agent_wallet_address: str,
    config: Optional[ACPContractConfig] = None,
) -> ACPContractClientV2:
    return ACPContractClientV2(
        wallet_private_key=wallet_private_key,
        agent_wallet_address=Web3.to_checksum_address(agent_wallet_address),
        entity_id=entity_id,
        config=config or get_acp_config(),
    )


def get_account_from_private_key(wallet_private_key: str) -> str:
    return Account.from_key(wallet_private_key).address


def string_to_uuid(value: str) -> str:
    return str(uuid.uuid5(uuid.NAMESPACE_URL, value))


def create_unique_uuid(runtime: "AgentRuntime", base: str) -> str:
    """Deterministic id for ``base`` scoped to the runtime's agent."""
    return string_to_uuid(f"{base}:{runtime.agent_id}")
