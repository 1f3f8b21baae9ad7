from __future__ import annotations

from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from loguru import logger

from ivm_deployer.core.classify import is_already_verified
from ivm_deployer.core.config import NetworkConfig
from ivm_deployer.core.constants.base import TOKEN_CONTRACT_PATH
from ivm_deployer.core.models import VerificationOutcome
from ivm_deployer.core.utils.etherscan import (
    get_etherscan_address_link,
    submit_verification,
)

SubmitFn = Callable[..., Awaitable[Any]]


class VerificationSubmitter:
    """Submits contracts to the block explorer, treating "already verified" as success.

    The explorer has no verify-if-needed call, so a repeat submission comes back
    as an error whose text carries the marker. Nothing here retries.
    """

    def __init__(
        self,
        network: NetworkConfig,
        *,
        api_key: str | None,
        artifacts_dir: str | Path = "artifacts",
        default_contract_path: str = TOKEN_CONTRACT_PATH,
        submit: SubmitFn = submit_verification,
    ):
        self.network = network
        self.api_key = api_key
        self.artifacts_dir = Path(artifacts_dir)
        self.default_contract_path = default_contract_path
        self._submit = submit

    async def verify(
        self,
        address: str,
        contract_path: str | None = None,
        constructor_args: list[Any] | None = None,
    ) -> VerificationOutcome:
        if self.network.offline:
            logger.info(f"Skipping verification on {self.network.name} network.")
            return VerificationOutcome.skipped(address, f"offline network {self.network.name}")
        if not self.api_key:
            logger.info("ETHERSCAN_API_KEY missing; skipping automatic verification.")
            return VerificationOutcome.skipped(address, "no explorer API key")

        path = contract_path or self.default_contract_path
        logger.info(f"Verifying {path} at {address} on {self.network.name}...")
        try:
            await self._submit(
                chain_id=self.network.chain_id,
                contract_address=address,
                contract_path=path,
                constructor_args=list(constructor_args or []),
                api_key=self.api_key,
                artifacts_dir=self.artifacts_dir,
            )
        except Exception as exc:
            reason = str(exc)
            if is_already_verified(reason):
                logger.info(f"Contract {address} already verified.")
                return VerificationOutcome.already_verified(address)
            logger.error(f"Verification failed for {address}: {reason}")
            return VerificationOutcome.failure(address, reason)

        link = get_etherscan_address_link(self.network.chain_id, address)
        logger.info(f"Verification submitted for {address}" + (f" ({link})" if link else ""))
        return VerificationOutcome.submitted(address)
