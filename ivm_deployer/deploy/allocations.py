from __future__ import annotations

from loguru import logger

from ivm_deployer.adapters.chain_adapter.adapter import IvmChainAdapter
from ivm_deployer.core.constants.ivm_abi import IVM_TOKEN_ABI
from ivm_deployer.core.errors import AllocationInitFailed, ContractCallReverted
from ivm_deployer.core.models import AllocationAddressSet
from ivm_deployer.core.utils.transaction import TransactionRevertedError


async def initialize_allocations(
    chain: IvmChainAdapter,
    token_address: str,
    beneficiaries: AllocationAddressSet,
    *,
    community: str,
) -> dict:
    """Call ``setupAllocations`` once and wait for inclusion.

    The token only accepts this call once; a revert is never retried.
    """
    args = [community, *beneficiaries.as_tuple()]
    logger.info(f"Initializing allocations on {token_address}...")
    try:
        pending = await chain.send_transaction(
            token_address, IVM_TOKEN_ABI, "setupAllocations", args
        )
        receipt = await chain.wait_for_inclusion(pending)
    except (ContractCallReverted, TransactionRevertedError) as exc:
        raise AllocationInitFailed(
            f"setupAllocations on {token_address} reverted: {exc}"
        ) from exc
    logger.info("Allocations initialized.")
    return receipt
