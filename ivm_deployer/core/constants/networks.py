NETWORK_MAINNET = "mainnet"
NETWORK_SEPOLIA = "sepolia"
NETWORK_HARDHAT = "hardhat"
NETWORK_LOCALHOST = "localhost"
NETWORK_LOCAL = "local"

CHAIN_ID_MAINNET = 1
CHAIN_ID_SEPOLIA = 11155111
CHAIN_ID_HARDHAT = 31337

# In-memory and loopback networks; nothing deployed there can be verified.
OFFLINE_NETWORKS: frozenset[str] = frozenset(
    {NETWORK_HARDHAT, NETWORK_LOCALHOST, NETWORK_LOCAL}
)

NETWORK_CHAIN_IDS: dict[str, int] = {
    NETWORK_MAINNET: CHAIN_ID_MAINNET,
    NETWORK_SEPOLIA: CHAIN_ID_SEPOLIA,
    NETWORK_HARDHAT: CHAIN_ID_HARDHAT,
    NETWORK_LOCALHOST: CHAIN_ID_HARDHAT,
    NETWORK_LOCAL: CHAIN_ID_HARDHAT,
}

LOCAL_RPC_URL = "http://127.0.0.1:8545"

DEFAULT_RPC_URLS: dict[str, str] = {name: LOCAL_RPC_URL for name in OFFLINE_NETWORKS}

CHAIN_EXPLORER_URLS: dict[int, str] = {
    CHAIN_ID_MAINNET: "https://etherscan.io/",
    CHAIN_ID_SEPOLIA: "https://sepolia.etherscan.io/",
}

ETHERSCAN_V2_API_URL = "https://api.etherscan.io/v2/api"

PRODUCTION_CONFIRMATIONS = 5
DEFAULT_CONFIRMATIONS = 2


def is_offline_network(network: str) -> bool:
    return network.strip().lower() in OFFLINE_NETWORKS


def confirmation_requirement(network: str) -> int:
    if network.strip().lower() == NETWORK_MAINNET:
        return PRODUCTION_CONFIRMATIONS
    return DEFAULT_CONFIRMATIONS
