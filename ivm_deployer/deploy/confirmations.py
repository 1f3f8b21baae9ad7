from __future__ import annotations

import asyncio

from loguru import logger

from ivm_deployer.adapters.chain_adapter.adapter import IvmChainAdapter
from ivm_deployer.core.constants.base import RECEIPT_POLL_INTERVAL_S
from ivm_deployer.core.errors import DeploymentNotFinal
from ivm_deployer.core.models import PendingTransaction


async def _ensure_still_pending(chain: IvmChainAdapter, pending: PendingTransaction) -> bool:
    """Return True if the transaction was mined meanwhile, raise if it can no longer be."""
    confirmed_nonce = await chain.get_transaction_count(pending.sender)
    if confirmed_nonce > pending.nonce:
        # The nonce is spent; only our own inclusion is acceptable.
        if await chain.get_receipt(pending.tx_hash) is not None:
            return True
        raise DeploymentNotFinal(
            pending.tx_hash,
            f"Transaction {pending.tx_hash} was replaced (nonce {pending.nonce} already used)",
        )
    if await chain.get_transaction(pending.tx_hash) is None:
        raise DeploymentNotFinal(
            pending.tx_hash, f"Transaction {pending.tx_hash} was dropped"
        )
    return False


async def await_confirmations(
    chain: IvmChainAdapter,
    pending: PendingTransaction,
    requirement: int,
    *,
    poll_interval: float | None = None,
) -> None:
    """Block until *pending* has ``requirement`` confirmations, counting its own block.

    There is no timeout; wrap the call in ``asyncio.wait_for`` if one is needed.
    """
    if requirement < 1:
        raise ValueError("requirement must be >= 1")
    if poll_interval is None:
        poll_interval = RECEIPT_POLL_INTERVAL_S

    logger.info(f"Waiting for {requirement} confirmations of {pending.tx_hash}...")
    while True:
        receipt = await chain.get_receipt(pending.tx_hash)
        if receipt is None:
            if not await _ensure_still_pending(chain, pending):
                await asyncio.sleep(poll_interval)
            continue

        if int(receipt.get("status", 1)) == 0:
            raise DeploymentNotFinal(
                pending.tx_hash,
                f"Transaction {pending.tx_hash} reverted in block {receipt.get('blockNumber')}",
            )

        target_block = int(receipt["blockNumber"]) + requirement - 1
        head = await chain.get_block_number()
        if head >= target_block:
            logger.info(
                f"{pending.tx_hash} confirmed at block {receipt['blockNumber']} (head {head})"
            )
            return
        await asyncio.sleep(poll_interval)
