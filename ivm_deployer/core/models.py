from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import StrEnum

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

_CHAIN_ADDRESS_RE = re.compile(r"0x[0-9a-fA-F]{40}")

ALLOCATION_ROLES: tuple[str, ...] = (
    "marketing",
    "development",
    "team",
    "reserve",
    "loyalty",
)


def is_valid_chain_address(value: object) -> bool:
    return isinstance(value, str) and _CHAIN_ADDRESS_RE.fullmatch(value) is not None


def same_address(a: str, b: str) -> bool:
    return a.lower() == b.lower()


def invalid_roles(addresses: Mapping[str, object], roles: tuple[str, ...]) -> list[str]:
    """Return every role whose value is missing or not a ``0x`` + 40 hex address."""
    return [role for role in roles if not is_valid_chain_address(addresses.get(role))]


@dataclass(frozen=True)
class AllocationAddressSet:
    marketing: str
    development: str
    team: str
    reserve: str
    loyalty: str

    def __post_init__(self) -> None:
        bad = invalid_roles(self.as_dict(), ALLOCATION_ROLES)
        if bad:
            raise ValueError(f"Malformed allocation address for: {', '.join(bad)}")

    @classmethod
    def from_mapping(cls, addresses: Mapping[str, str]) -> AllocationAddressSet:
        return cls(**{role: addresses[role] for role in ALLOCATION_ROLES})

    def as_dict(self) -> dict[str, str]:
        return {role: getattr(self, role) for role in ALLOCATION_ROLES}

    def as_tuple(self) -> tuple[str, ...]:
        return tuple(getattr(self, role) for role in ALLOCATION_ROLES)

    def items(self) -> Iterator[tuple[str, str]]:
        for role in ALLOCATION_ROLES:
            yield role, getattr(self, role)

    def zero_roles(self) -> list[str]:
        return [role for role, addr in self.items() if same_address(addr, ZERO_ADDRESS)]


@dataclass(frozen=True)
class LogWindow:
    """Inclusive block range ``[from_block, to_block]``."""

    from_block: int
    to_block: int

    @property
    def size(self) -> int:
        return self.to_block - self.from_block + 1


@dataclass(frozen=True)
class PendingTransaction:
    tx_hash: str
    sender: str
    nonce: int
    contract_address: str | None = None


class VerificationStatus(StrEnum):
    SUBMITTED = "submitted"
    ALREADY_VERIFIED = "already_verified"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class VerificationOutcome:
    status: VerificationStatus
    address: str
    reason: str | None = None

    @property
    def failed(self) -> bool:
        return self.status == VerificationStatus.FAILED

    @classmethod
    def submitted(cls, address: str) -> VerificationOutcome:
        return cls(VerificationStatus.SUBMITTED, address)

    @classmethod
    def already_verified(cls, address: str) -> VerificationOutcome:
        return cls(VerificationStatus.ALREADY_VERIFIED, address)

    @classmethod
    def skipped(cls, address: str, reason: str) -> VerificationOutcome:
        return cls(VerificationStatus.SKIPPED, address, reason)

    @classmethod
    def failure(cls, address: str, reason: str) -> VerificationOutcome:
        return cls(VerificationStatus.FAILED, address, reason)
