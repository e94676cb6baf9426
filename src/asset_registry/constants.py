"""Constants and mappings for the asset registry client."""

from enum import Enum

SEPOLIA_CHAIN_ID = 11155111
DEFAULT_REGISTRY_ADDRESS = "0x39e9c1a2d8c5ae92b98f4250a7679bdaff4345dc"
DEFAULT_RPC_URL = "https://sepolia.drpc.org"

# Chain id to display label for the networks a wallet is most likely on
# https://chainlist.org
NETWORK_LABELS = {
    1: "Ethereum Mainnet",
    10: "OP Mainnet",
    137: "Polygon",
    8453: "Base",
    17000: "Holesky",
    42161: "Arbitrum One",
    31337: "Local Devnet",
    SEPOLIA_CHAIN_ID: "Sepolia",
}


class ProviderErrorCode(int, Enum):
    """EIP-1193 / EIP-3326 provider error codes."""

    USER_REJECTED = 4001
    UNAUTHORIZED = 4100
    UNSUPPORTED_METHOD = 4200
    DISCONNECTED = 4900
    UNRECOGNIZED_CHAIN = 4902


class RegistryEvent(str, Enum):
    """Events emitted by the registry contract."""

    REGISTERED = "AssetRegistered"
    TRANSFERRED = "AssetTransferred"


# Selector of the solidity ``Error(string)`` revert payload
REVERT_ERROR_SELECTOR = bytes.fromhex("08c379a0")


def get_network_label(chain_id: int) -> str:
    """Get a display label for a chain id.

    Args:
        chain_id: Numeric chain id

    Returns:
        Known network name, or ``Chain <id>`` for unknown networks
    """
    return NETWORK_LABELS.get(chain_id, f"Chain {chain_id}")
