from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from loguru import logger

from ivm_deployer.adapters.chain_adapter.adapter import IvmChainAdapter
from ivm_deployer.core.config import (
    BENEFICIARY_ROLES,
    COMMUNITY_ROLE,
    AuditConfig,
    DeploymentConfig,
)
from ivm_deployer.core.constants.base import (
    LOYALTY_VAULT_CONTRACT_PATH,
    TRANCHE_VESTING_CONTRACT_PATH,
)
from ivm_deployer.core.constants.ivm_abi import (
    LOYALTY_VAULT_ABI,
    LOYALTY_VAULT_CONSTRUCTOR_GETTERS,
    TRANCHE_VESTING_CONSTRUCTOR_GETTERS,
    TRANCHE_VESTING_WALLET_ABI,
)
from ivm_deployer.core.constants.networks import confirmation_requirement
from ivm_deployer.core.errors import ConfigurationError, VerificationFailed
from ivm_deployer.core.models import (
    AllocationAddressSet,
    PendingTransaction,
    VerificationOutcome,
    invalid_roles,
    is_valid_chain_address,
)
from ivm_deployer.deploy.allocations import initialize_allocations
from ivm_deployer.deploy.confirmations import await_confirmations
from ivm_deployer.deploy.resolver import resolve_allocation_addresses
from ivm_deployer.deploy.verification import VerificationSubmitter

ROLE_LABELS: dict[str, str] = {
    "marketing": "Marketing",
    "development": "Development & Tech",
    "team": "Team",
    "reserve": "Reserve",
    "loyalty": "Loyalty",
}


def build_signer(private_key: str) -> LocalAccount:
    try:
        return Account.from_key(private_key)
    except Exception as exc:  # noqa: BLE001
        # Never echo the key itself.
        raise ConfigurationError("PRIVATE_KEY is not a valid secp256k1 private key") from exc


def validate_beneficiaries(
    beneficiaries: dict[str, str],
) -> tuple[str, AllocationAddressSet]:
    """Return ``(community, allocation set)`` or raise naming every bad role."""
    bad = invalid_roles(beneficiaries, BENEFICIARY_ROLES)
    if bad:
        raise ConfigurationError(
            "Missing or invalid beneficiary address for: "
            + ", ".join(bad)
            + " (expected 0x-prefixed 40 hex chars)",
            roles=bad,
        )
    return beneficiaries[COMMUNITY_ROLE], AllocationAddressSet.from_mapping(beneficiaries)


@dataclass
class DeploymentResult:
    token_address: str
    deployment: PendingTransaction
    confirmations: int
    verification: VerificationOutcome


@dataclass
class AuditResult:
    token_address: str
    addresses: AllocationAddressSet
    outcomes: list[VerificationOutcome] = field(default_factory=list)


class DeploymentDriver:
    """Deploy the token, wait for depth, initialize allocations, verify.

    A failed stage aborts the rest. On-chain state from earlier stages (for
    example a deployed but uninitialized token) is left for manual recovery.
    """

    def __init__(
        self,
        config: DeploymentConfig,
        *,
        chain: IvmChainAdapter | None = None,
        submitter: VerificationSubmitter | None = None,
    ):
        self.config = config
        self._chain = chain
        self.submitter = submitter or VerificationSubmitter(
            config.network,
            api_key=config.etherscan_api_key,
            artifacts_dir=config.artifacts_dir,
            default_contract_path=config.token_contract,
        )

    async def run(self) -> DeploymentResult:
        account = build_signer(self.config.private_key)
        community, beneficiaries = validate_beneficiaries(self.config.beneficiaries)

        chain = self._chain or IvmChainAdapter(
            self.config.network,
            account=account,
            artifacts_dir=self.config.artifacts_dir,
        )
        try:
            return await self._run(chain, account, community, beneficiaries)
        finally:
            if self._chain is None:
                await chain.close()

    async def _run(
        self,
        chain: IvmChainAdapter,
        account: LocalAccount,
        community: str,
        beneficiaries: AllocationAddressSet,
    ) -> DeploymentResult:
        network = chain.network_name
        requirement = confirmation_requirement(network)
        logger.info(f"Deployer: {account.address} on {network}")

        stage = "deploy"
        try:
            pending = await chain.deploy_contract(self.config.token_contract)
            token = pending.contract_address
            logger.info(f"IVM deployed at: {token} (tx {pending.tx_hash})")

            stage = "confirmations"
            await await_confirmations(chain, pending, requirement)

            stage = "allocations"
            await initialize_allocations(chain, token, beneficiaries, community=community)
        except Exception as exc:
            logger.error(f"Deployment aborted at stage '{stage}' on {network}: {exc}")
            raise

        outcome = await self.submitter.verify(token, None, [])
        if outcome.failed:
            logger.error(f"Token verification failed, continuing: {outcome.reason}")
        logger.info("Done.")
        return DeploymentResult(
            token_address=token,
            deployment=pending,
            confirmations=requirement,
            verification=outcome,
        )


class AuditDriver:
    """Resolve the token's vesting / vault contracts and verify each in order.

    Read-only. The batch stops at the first failed verification.
    """

    def __init__(
        self,
        config: AuditConfig,
        *,
        chain: IvmChainAdapter | None = None,
        submitter: VerificationSubmitter | None = None,
    ):
        self.config = config
        self._chain = chain
        self.submitter = submitter or VerificationSubmitter(
            config.network,
            api_key=config.etherscan_api_key,
            artifacts_dir=config.artifacts_dir,
            default_contract_path=config.token_contract,
        )

    async def run(self) -> AuditResult:
        token = self.config.token_address
        if not is_valid_chain_address(token):
            raise ConfigurationError(
                f"Set a valid IVM_TOKEN_ADDRESS (0x-prefixed address), got {token!r}",
                roles=["token"],
            )

        chain = self._chain or IvmChainAdapter(
            self.config.network, artifacts_dir=self.config.artifacts_dir
        )
        try:
            return await self._run(chain, token)
        finally:
            if self._chain is None:
                await chain.close()

    async def _constructor_args(
        self,
        chain: IvmChainAdapter,
        address: str,
        abi: list[dict[str, Any]],
        getters: tuple[str, ...],
    ) -> list[Any]:
        args: list[Any] = []
        for getter in getters:
            value = await chain.call_view(address, abi, getter)
            args.append(str(value) if isinstance(value, int) else value)
        return args

    async def _verify(self, address: str, path: str | None, args: list[Any]) -> VerificationOutcome:
        outcome = await self.submitter.verify(address, path, args)
        if outcome.failed:
            raise VerificationFailed(address, outcome.reason or "unknown error")
        return outcome

    async def _run(self, chain: IvmChainAdapter, token: str) -> AuditResult:
        logger.info(f"Auditing {token} on {chain.network_name}")
        addresses = await resolve_allocation_addresses(chain, token)
        result = AuditResult(token_address=token, addresses=addresses)

        for role, address in addresses.items():
            if role == "loyalty":
                logger.info(f"Verifying LoyaltyVault at {address}...")
                args = await self._constructor_args(
                    chain, address, LOYALTY_VAULT_ABI, LOYALTY_VAULT_CONSTRUCTOR_GETTERS
                )
                path = LOYALTY_VAULT_CONTRACT_PATH
            else:
                logger.info(f"Verifying {ROLE_LABELS[role]} vesting at {address}...")
                args = await self._constructor_args(
                    chain,
                    address,
                    TRANCHE_VESTING_WALLET_ABI,
                    TRANCHE_VESTING_CONSTRUCTOR_GETTERS,
                )
                path = TRANCHE_VESTING_CONTRACT_PATH
            result.outcomes.append(await self._verify(address, path, args))

        if self.config.include_token:
            logger.info(f"Verifying token at {token}...")
            result.outcomes.append(await self._verify(token, None, []))
        return result
