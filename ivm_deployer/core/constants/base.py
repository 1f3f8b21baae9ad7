GAS_BUFFER_MULTIPLIER = 1.1

# Historical scan for AllocationsInitialized
LOG_WINDOW_SIZE = 10
MAX_LOG_LOOKBACK_BLOCKS = 200_000

DEFAULT_HTTP_TIMEOUT = 30.0
RECEIPT_POLL_INTERVAL_S = 1.0

TOKEN_CONTRACT_PATH = "contracts/IVMToken.sol:IVMToken"
TRANCHE_VESTING_CONTRACT_PATH = "contracts/IVMToken.sol:TrancheVestingWallet"
LOYALTY_VAULT_CONTRACT_PATH = "contracts/IVMToken.sol:LoyaltyVault"
