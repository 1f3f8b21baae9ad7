"""Locate the vesting / vault contracts an IVM token created.

The token exposes them through getters, but some RPC backends (or older token
builds) answer the ``allocationsInitialized()`` read with undecodable data. In
that case the addresses are recovered from the ``AllocationsInitialized`` event
by scanning small block windows backwards from the chain head.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from loguru import logger

from ivm_deployer.adapters.chain_adapter.adapter import IvmChainAdapter
from ivm_deployer.core.constants.base import LOG_WINDOW_SIZE, MAX_LOG_LOOKBACK_BLOCKS
from ivm_deployer.core.constants.ivm_abi import (
    ALLOCATION_EVENT_FIELDS,
    ALLOCATION_GETTERS,
    ALLOCATIONS_INITIALIZED_EVENT_ABI,
    IVM_TOKEN_ABI,
)
from ivm_deployer.core.errors import AllocationsNotFound, NoDecodableData
from ivm_deployer.core.models import ALLOCATION_ROLES, AllocationAddressSet, LogWindow
from ivm_deployer.core.utils.events import event_topic

ALLOCATIONS_INITIALIZED_TOPIC = event_topic(ALLOCATIONS_INITIALIZED_EVENT_ABI)


@dataclass(frozen=True)
class LogWindowScan:
    """Newest-first block windows ending at ``head``.

    Iterating always starts again from ``head``. Windows stop at genesis or once
    ``max_lookback`` blocks have been covered.
    """

    head: int
    window_size: int = LOG_WINDOW_SIZE
    max_lookback: int = MAX_LOG_LOOKBACK_BLOCKS

    def __post_init__(self) -> None:
        if self.window_size < 1:
            raise ValueError("window_size must be >= 1")
        if self.head < 0:
            raise ValueError("head must be >= 0")

    def __iter__(self) -> Iterator[LogWindow]:
        to_block = self.head
        while to_block >= 0 and self.head - to_block < self.max_lookback:
            from_block = max(to_block - self.window_size + 1, 0)
            yield LogWindow(from_block, to_block)
            to_block = from_block - 1


async def find_latest_log(
    chain: IvmChainAdapter, address: str, topic: str, scan: LogWindowScan
) -> dict[str, Any] | None:
    """Return the last matching log of the newest window that has any."""
    for window in scan:
        logs = await chain.query_logs(address, topic, window.from_block, window.to_block)
        if logs:
            logs = sorted(
                logs,
                key=lambda lg: (
                    int(lg.get("blockNumber", 0)),
                    int(lg.get("logIndex", 0)),
                ),
            )
            logger.debug(
                f"Found {len(logs)} matching log(s) in blocks "
                f"{window.from_block}-{window.to_block}"
            )
            return logs[-1]
    return None


def _to_allocation_set(addresses: dict[str, str], *, source: str) -> AllocationAddressSet:
    try:
        resolved = AllocationAddressSet.from_mapping(addresses)
    except (KeyError, ValueError) as exc:
        raise AllocationsNotFound(f"Incomplete allocation addresses from {source}: {exc}") from exc
    zero = resolved.zero_roles()
    if zero:
        raise AllocationsNotFound(
            f"Zero allocation address from {source} for: {', '.join(zero)}"
        )
    return resolved


async def _read_allocation_state(
    chain: IvmChainAdapter, token_address: str
) -> AllocationAddressSet:
    initialized = await chain.call_view(token_address, IVM_TOKEN_ABI, "allocationsInitialized")
    if not initialized:
        raise AllocationsNotFound("Allocations are not initialized on this deployment.")

    addresses: dict[str, str] = {}
    for role in ALLOCATION_ROLES:
        addresses[role] = await chain.call_view(
            token_address, IVM_TOKEN_ABI, ALLOCATION_GETTERS[role]
        )
    return _to_allocation_set(addresses, source="token state")


async def _resolve_from_logs(
    chain: IvmChainAdapter,
    token_address: str,
    *,
    window_size: int,
    max_lookback: int,
) -> AllocationAddressSet:
    head = await chain.get_block_number()
    scan = LogWindowScan(head, window_size=window_size, max_lookback=max_lookback)
    log = await find_latest_log(chain, token_address, ALLOCATIONS_INITIALIZED_TOPIC, scan)
    if log is None:
        raise AllocationsNotFound(
            f"AllocationsInitialized event not found within {max_lookback} blocks "
            f"of {head}; cannot resolve vesting addresses."
        )

    fields = chain.decode_log(ALLOCATIONS_INITIALIZED_EVENT_ABI, log)
    addresses = {
        role: fields.get(field) for role, field in ALLOCATION_EVENT_FIELDS.items()
    }
    logger.info(
        f"Resolved allocation addresses from event at block {log.get('blockNumber')}"
    )
    return _to_allocation_set(addresses, source="AllocationsInitialized event")


async def resolve_allocation_addresses(
    chain: IvmChainAdapter,
    token_address: str,
    *,
    window_size: int = LOG_WINDOW_SIZE,
    max_lookback: int = MAX_LOG_LOOKBACK_BLOCKS,
) -> AllocationAddressSet:
    try:
        return await _read_allocation_state(chain, token_address)
    except NoDecodableData as exc:
        logger.warning(
            "allocationsInitialized() call failed, falling back to "
            f"AllocationsInitialized event lookup ({exc})"
        )
    return await _resolve_from_logs(
        chain, token_address, window_size=window_size, max_lookback=max_lookback
    )
