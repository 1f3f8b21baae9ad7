from __future__ import annotations

from pathlib import Path
from typing import Any

from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError
from web3.utils.address import get_create_address

from ivm_deployer.core.adapters.BaseAdapter import BaseAdapter
from ivm_deployer.core.classify import is_no_decodable_data
from ivm_deployer.core.config import NetworkConfig
from ivm_deployer.core.errors import ContractCallReverted, NoDecodableData
from ivm_deployer.core.models import PendingTransaction
from ivm_deployer.core.utils.artifacts import load_artifact
from ivm_deployer.core.utils.events import decode_event_log
from ivm_deployer.core.utils.transaction import (
    build_call_transaction,
    get_receipt,
    get_transaction,
    make_sign_callback,
    send_transaction,
    wait_for_transaction_receipt,
)
from ivm_deployer.core.utils.web3 import get_web3


class IvmChainAdapter(BaseAdapter):
    """JSON-RPC access for one network: deploys, view calls, transactions, logs."""

    adapter_type = "CHAIN"

    def __init__(
        self,
        network: NetworkConfig,
        *,
        account: LocalAccount | None = None,
        artifacts_dir: str | Path = "artifacts",
    ):
        super().__init__("chain_adapter", network)
        self.network = network
        self.account = account
        self.artifacts_dir = Path(artifacts_dir)
        self._web3: AsyncWeb3 | None = None
        self._sign_callback = make_sign_callback(account.key) if account else None

    @property
    def web3(self) -> AsyncWeb3:
        if self._web3 is None:
            self._web3 = get_web3(self.network)
        return self._web3

    @property
    def network_name(self) -> str:
        return self.network.name

    async def close(self) -> None:
        if self._web3 is not None:
            await self._web3.provider.disconnect()
            self._web3 = None

    def _require_account(self) -> LocalAccount:
        if self.account is None:
            raise ValueError("A signing account is required for state-changing calls")
        return self.account

    async def deploy_contract(
        self, contract_path: str, constructor_args: list[Any] | None = None
    ) -> PendingTransaction:
        account = self._require_account()
        artifact = load_artifact(self.artifacts_dir, contract_path)
        contract = self.web3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)
        tx = await contract.constructor(*(constructor_args or [])).build_transaction(
            {
                "chainId": self.network.chain_id,
                "from": account.address,
                "value": 0,
            }
        )
        tx.pop("nonce", None)
        self.logger.info(f"Deploying {artifact.fully_qualified_name} from {account.address}")
        pending = await send_transaction(self.web3, dict(tx), self._sign_callback)
        address = get_create_address(pending.sender, pending.nonce)
        return PendingTransaction(
            tx_hash=pending.tx_hash,
            sender=pending.sender,
            nonce=pending.nonce,
            contract_address=address,
        )

    async def call_view(
        self,
        address: str,
        abi: list[dict[str, Any]],
        fn_name: str,
        args: list[Any] | None = None,
    ) -> Any:
        contract = self.web3.eth.contract(
            address=self.web3.to_checksum_address(address), abi=abi
        )
        fn = getattr(contract.functions, fn_name)
        try:
            return await fn(*(args or [])).call()
        except ContractLogicError as exc:
            raise ContractCallReverted(fn_name, str(exc)) from exc
        except Exception as exc:
            if is_no_decodable_data(exc):
                raise NoDecodableData(
                    f"{fn_name}() on {address} returned no decodable data: {exc}"
                ) from exc
            raise

    async def send_transaction(
        self,
        address: str,
        abi: list[dict[str, Any]],
        fn_name: str,
        args: list[Any],
    ) -> PendingTransaction:
        account = self._require_account()
        tx = await build_call_transaction(
            self.web3,
            target=address,
            abi=abi,
            fn_name=fn_name,
            args=args,
            from_address=account.address,
            chain_id=self.network.chain_id,
        )
        try:
            return await send_transaction(self.web3, tx, self._sign_callback)
        except ContractLogicError as exc:
            # Gas estimation simulates the call, so most reverts surface here.
            raise ContractCallReverted(fn_name, str(exc)) from exc

    async def wait_for_inclusion(self, pending: PendingTransaction) -> dict:
        return await wait_for_transaction_receipt(self.web3, pending.tx_hash)

    async def get_receipt(self, tx_hash: str) -> dict | None:
        return await get_receipt(self.web3, tx_hash)

    async def get_transaction(self, tx_hash: str) -> dict | None:
        return await get_transaction(self.web3, tx_hash)

    async def get_transaction_count(self, address: str) -> int:
        return await self.web3.eth.get_transaction_count(
            self.web3.to_checksum_address(address), block_identifier="latest"
        )

    async def get_block_number(self) -> int:
        return int(await self.web3.eth.block_number)

    async def query_logs(
        self, address: str, topic: str, from_block: int, to_block: int
    ) -> list[dict[str, Any]]:
        logs = await self.web3.eth.get_logs(
            {
                "address": self.web3.to_checksum_address(address),
                "topics": [topic],
                "fromBlock": int(from_block),
                "toBlock": int(to_block),
            }
        )
        return [dict(log) for log in logs]

    def decode_log(
        self, event_abi: dict[str, Any], raw_log: dict[str, Any]
    ) -> dict[str, Any]:
        return decode_event_log(event_abi, raw_log, self.web3.codec)
