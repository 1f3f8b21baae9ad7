from __future__ import annotations

from collections.abc import Iterable


class DeployerError(Exception):
    """Base class for every failure raised by the deployer."""


class ConfigurationError(DeployerError):
    def __init__(self, message: str, roles: Iterable[str] = ()):
        self.roles = list(roles)
        super().__init__(message)


class DeploymentNotFinal(DeployerError):
    def __init__(self, txn_hash: str, message: str | None = None):
        self.txn_hash = txn_hash
        super().__init__(message or f"Transaction {txn_hash} did not reach finality")


class AllocationInitFailed(DeployerError):
    pass


class NoDecodableData(DeployerError):
    """A view call returned data that cannot be decoded with the known ABI."""


class ContractCallReverted(DeployerError):
    def __init__(self, fn_name: str, reason: str | None = None):
        self.fn_name = fn_name
        self.reason = reason
        super().__init__(f"{fn_name}() reverted: {reason or 'no reason given'}")


class AllocationsNotFound(DeployerError):
    pass


class VerificationServiceError(RuntimeError):
    """Raw failure reported by the block explorer."""


class VerificationFailed(DeployerError):
    def __init__(self, address: str, reason: str):
        self.address = address
        self.reason = reason
        super().__init__(f"Verification failed for {address}: {reason}")
