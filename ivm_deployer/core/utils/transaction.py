import asyncio
import math
from collections.abc import Callable
from typing import Any

from eth_account import Account
from loguru import logger
from web3 import AsyncWeb3
from web3.exceptions import TransactionNotFound

from ivm_deployer.core.constants.base import (
    GAS_BUFFER_MULTIPLIER,
    RECEIPT_POLL_INTERVAL_S,
)
from ivm_deployer.core.models import PendingTransaction


class TransactionRevertedError(RuntimeError):
    def __init__(
        self,
        txn_hash: str,
        receipt: dict[str, Any] | None = None,
        message: str | None = None,
    ):
        self.txn_hash = txn_hash
        self.receipt = receipt or {}
        super().__init__(message or f"Transaction reverted: {txn_hash}")


def _raise_revert_error(txn_hash: str, receipt: dict[str, Any]) -> None:
    gas_used = 0
    try:
        gas_used = int(receipt.get("gasUsed") or 0)
    except (TypeError, ValueError):
        gas_used = 0
    suffix = f" gasUsed={gas_used}" if gas_used else ""
    raise TransactionRevertedError(
        txn_hash,
        receipt,
        message=f"Transaction reverted (status=0): {txn_hash}{suffix}",
    )


def _get_transaction_from_address(transaction: dict) -> str:
    if "from" not in transaction:
        raise ValueError("Transaction does not contain from address")
    return AsyncWeb3.to_checksum_address(transaction["from"])


def _normalize_hash(txn_hash: Any) -> str:
    if isinstance(txn_hash, (bytes, bytearray)):
        txn_hash = bytes(txn_hash).hex()
    txn_hash = str(txn_hash)
    return txn_hash if txn_hash.startswith("0x") else f"0x{txn_hash}"


def make_sign_callback(private_key: str) -> Callable:
    account = Account.from_key(private_key)

    async def sign_callback(tx: dict) -> bytes:
        signed = account.sign_transaction(tx)
        return signed.raw_transaction

    return sign_callback


async def nonce_transaction(web3: AsyncWeb3, transaction: dict) -> dict:
    transaction = transaction.copy()
    from_address = _get_transaction_from_address(transaction)
    transaction["nonce"] = await web3.eth.get_transaction_count(
        from_address, block_identifier="pending"
    )
    return transaction


async def gas_limit_transaction(web3: AsyncWeb3, transaction: dict) -> dict:
    transaction = transaction.copy()

    # prevents RPCs from taking this as a serious limit
    transaction.pop("gas", None)

    gas_limit = await web3.eth.estimate_gas(transaction, block_identifier="latest")
    transaction["gas"] = int(math.ceil(gas_limit * GAS_BUFFER_MULTIPLIER))
    return transaction


async def fee_transaction(web3: AsyncWeb3, transaction: dict) -> dict:
    """Use the node's suggested gas price unless fees are already set."""
    if any(k in transaction for k in ("gasPrice", "maxFeePerGas")):
        return transaction
    transaction = transaction.copy()
    transaction["gasPrice"] = await web3.eth.gas_price
    return transaction


async def broadcast_transaction(web3: AsyncWeb3, signed_transaction: bytes) -> str:
    tx_hash = await web3.eth.send_raw_transaction(signed_transaction)
    return _normalize_hash(tx_hash)


async def send_transaction(
    web3: AsyncWeb3, transaction: dict, sign_callback: Callable
) -> PendingTransaction:
    """Sign and broadcast *transaction*; does not wait for inclusion."""
    if sign_callback is None:
        raise ValueError("sign_callback must be provided to send transaction")

    transaction = await gas_limit_transaction(web3, transaction)
    transaction = await nonce_transaction(web3, transaction)
    transaction = await fee_transaction(web3, transaction)
    logger.info(
        f"Broadcasting transaction from={transaction['from']} nonce={transaction['nonce']}"
    )
    signed_transaction = await sign_callback(transaction)
    txn_hash = await broadcast_transaction(web3, signed_transaction)
    logger.info(f"Transaction broadcasted: {txn_hash}")
    return PendingTransaction(
        tx_hash=txn_hash,
        sender=transaction["from"],
        nonce=int(transaction["nonce"]),
    )


async def get_receipt(web3: AsyncWeb3, txn_hash: str) -> dict | None:
    try:
        return dict(await web3.eth.get_transaction_receipt(txn_hash))
    except TransactionNotFound:
        return None


async def get_transaction(web3: AsyncWeb3, txn_hash: str) -> dict | None:
    try:
        return dict(await web3.eth.get_transaction(txn_hash))
    except TransactionNotFound:
        return None


async def wait_for_transaction_receipt(
    web3: AsyncWeb3,
    txn_hash: str,
    poll_interval: float = RECEIPT_POLL_INTERVAL_S,
) -> dict:
    """Poll until *txn_hash* is included; raises if the receipt reports a revert."""
    txn_hash = _normalize_hash(txn_hash)
    while True:
        receipt = await get_receipt(web3, txn_hash)
        if receipt is not None:
            break
        await asyncio.sleep(poll_interval)

    if receipt.get("status") == 0:
        _raise_revert_error(txn_hash, receipt)
    return receipt


async def build_call_transaction(
    web3: AsyncWeb3,
    *,
    target: str,
    abi: list[dict[str, Any]],
    fn_name: str,
    args: list[Any],
    from_address: str,
    chain_id: int,
    value: int = 0,
) -> dict[str, Any]:
    try:
        contract = web3.eth.contract(
            address=web3.to_checksum_address(target),
            abi=abi,
        )
        data = contract.encode_abi(fn_name, args)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Failed to encode {fn_name}: {exc}") from exc

    return {
        "chainId": int(chain_id),
        "from": AsyncWeb3.to_checksum_address(from_address),
        "to": AsyncWeb3.to_checksum_address(target),
        "data": data,
        "value": int(value),
    }
