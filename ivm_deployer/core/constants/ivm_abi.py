from __future__ import annotations

from typing import Any

# Minimal ABIs for IVMToken and the vesting / vault contracts it creates.


def _view(name: str, output_type: str) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"type": output_type}],
    }


ALLOCATIONS_INITIALIZED_EVENT_ABI: dict[str, Any] = {
    "type": "event",
    "name": "AllocationsInitialized",
    "anonymous": False,
    "inputs": [
        {"name": "community", "type": "address", "indexed": True},
        {"name": "marketingBeneficiary", "type": "address", "indexed": True},
        {"name": "devTechBeneficiary", "type": "address", "indexed": True},
        {"name": "marketingVesting", "type": "address", "indexed": False},
        {"name": "devTechVesting", "type": "address", "indexed": False},
        {"name": "teamVesting", "type": "address", "indexed": False},
        {"name": "reserveVesting", "type": "address", "indexed": False},
        {"name": "loyaltyVault", "type": "address", "indexed": False},
    ],
}

# Allocation role -> event field carrying the created contract address.
ALLOCATION_EVENT_FIELDS: dict[str, str] = {
    "marketing": "marketingVesting",
    "development": "devTechVesting",
    "team": "teamVesting",
    "reserve": "reserveVesting",
    "loyalty": "loyaltyVault",
}

# Allocation role -> token getter returning the created contract address.
ALLOCATION_GETTERS: dict[str, str] = {
    "marketing": "marketingVesting",
    "development": "devTechVesting",
    "team": "teamVesting",
    "reserve": "reserveVesting",
    "loyalty": "loyaltyVault",
}

IVM_TOKEN_ABI: list[dict[str, Any]] = [
    {"type": "constructor", "stateMutability": "nonpayable", "inputs": []},
    {
        "type": "function",
        "name": "setupAllocations",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "community", "type": "address"},
            {"name": "marketing", "type": "address"},
            {"name": "devTech", "type": "address"},
            {"name": "team", "type": "address"},
            {"name": "reserve", "type": "address"},
            {"name": "loyalty", "type": "address"},
        ],
        "outputs": [],
    },
    _view("allocationsInitialized", "bool"),
    *[_view(getter, "address") for getter in ALLOCATION_GETTERS.values()],
    ALLOCATIONS_INITIALIZED_EVENT_ABI,
]

TRANCHE_VESTING_WALLET_ABI: list[dict[str, Any]] = [
    _view("token", "address"),
    _view("beneficiary", "address"),
    _view("start", "uint64"),
    _view("period", "uint64"),
    _view("totalTranches", "uint256"),
    _view("owner", "address"),
]

LOYALTY_VAULT_ABI: list[dict[str, Any]] = [
    _view("token", "address"),
    _view("releaseTime", "uint256"),
    _view("admin", "address"),
    _view("owner", "address"),
]

# Getter order matches each contract's constructor argument order.
TRANCHE_VESTING_CONSTRUCTOR_GETTERS: tuple[str, ...] = (
    "token",
    "beneficiary",
    "start",
    "period",
    "totalTranches",
    "owner",
)
LOYALTY_VAULT_CONSTRUCTOR_GETTERS: tuple[str, ...] = (
    "token",
    "releaseTime",
    "admin",
    "owner",
)
