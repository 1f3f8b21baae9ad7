import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict

from ivm_deployer.core.constants.base import TOKEN_CONTRACT_PATH
from ivm_deployer.core.constants.networks import (
    DEFAULT_RPC_URLS,
    NETWORK_CHAIN_IDS,
    NETWORK_SEPOLIA,
    is_offline_network,
)
from ivm_deployer.core.errors import ConfigurationError
from ivm_deployer.core.models import ALLOCATION_ROLES

_CONFIG_ENV_KEYS = ("IVM_CONFIG_PATH", "IVM_CONFIG")
_DEFAULT_CONFIG_FILENAME = "config.json"

COMMUNITY_ROLE = "community"
BENEFICIARY_ENV_KEYS: dict[str, str] = {
    COMMUNITY_ROLE: "COMMUNITY_WALLET",
    "marketing": "MARKETING_WALLET",
    "development": "DEVELOPMENT_WALLET",
    "team": "TEAM_WALLET",
    "reserve": "RESERVE_WALLET",
    "loyalty": "LOYALTY_WALLET",
}
BENEFICIARY_ROLES: tuple[str, ...] = (COMMUNITY_ROLE, *ALLOCATION_ROLES)


def _find_project_root(start: Path) -> Path | None:
    cur = start.resolve()
    for parent in [cur, *cur.parents]:
        if (parent / "pyproject.toml").exists():
            return parent
    return None


def _project_root() -> Path | None:
    return _find_project_root(Path.cwd()) or _find_project_root(Path(__file__).parent)


def resolve_config_path(path: str | Path | None = None) -> Path:
    if path is not None:
        return Path(path).expanduser()

    env_path = next(
        (os.getenv(k, "").strip() for k in _CONFIG_ENV_KEYS if os.getenv(k)), ""
    )
    if env_path:
        p = Path(env_path).expanduser()
        if p.is_absolute():
            return p
        root = _project_root()
        return (root / p) if root else p

    root = _project_root()
    return (root / _DEFAULT_CONFIG_FILENAME) if root else Path(_DEFAULT_CONFIG_FILENAME)


def load_config_json(
    path: str | Path | None = None, *, require_exists: bool = False
) -> dict[str, Any]:
    cfg_path = resolve_config_path(path)
    if not cfg_path.exists():
        if require_exists:
            raise FileNotFoundError(f"Config file not found: {cfg_path}")
        return {}
    try:
        return json.loads(cfg_path.read_text())
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Config file {cfg_path} is not valid JSON: {exc}") from exc


CONFIG: dict[str, Any] = {}


def set_config(config: dict[str, Any]) -> None:
    """Replace the global CONFIG dict in-place.

    This allows code that imported CONFIG at module import time to see updates.
    """
    CONFIG.clear()
    CONFIG.update(config)


def load_config(
    path: str | Path | None = None, *, require_exists: bool = False
) -> None:
    """Load config from disk into the global CONFIG dict."""
    set_config(load_config_json(path, require_exists=require_exists))


def _env(name: str) -> str | None:
    value = os.environ.get(name)
    if value and value.strip():
        return value.strip()
    return None


def get_network_name() -> str:
    return str(_env("IVM_NETWORK") or CONFIG.get("network") or NETWORK_SEPOLIA).strip()


def get_etherscan_api_key() -> str | None:
    api_key = _env("ETHERSCAN_API_KEY") or CONFIG.get("etherscan_api_key")
    return str(api_key).strip() if api_key else None


def get_private_key() -> str | None:
    key = _env("PRIVATE_KEY") or CONFIG.get("private_key")
    return str(key).strip() if key else None


def get_artifacts_dir() -> Path:
    raw = CONFIG.get("artifacts_dir") or "artifacts"
    p = Path(str(raw)).expanduser()
    if p.is_absolute():
        return p
    root = _project_root()
    return (root / p) if root else p


def normalize_private_key(raw: str) -> str:
    key = raw.strip()
    return key if key.startswith("0x") else f"0x{key}"


class NetworkConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    chain_id: int
    rpc_url: str

    @property
    def offline(self) -> bool:
        return is_offline_network(self.name)


class DeploymentConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    network: NetworkConfig
    private_key: str
    beneficiaries: dict[str, str]
    etherscan_api_key: str | None = None
    artifacts_dir: Path = Path("artifacts")
    token_contract: str = TOKEN_CONTRACT_PATH


class AuditConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    network: NetworkConfig
    token_address: str
    etherscan_api_key: str | None = None
    artifacts_dir: Path = Path("artifacts")
    include_token: bool = False
    token_contract: str = TOKEN_CONTRACT_PATH


def get_network_config(name: str | None = None) -> NetworkConfig:
    network = (name or get_network_name()).strip()
    declared = CONFIG.get("networks", {}).get(network, {})

    rpc_url = (
        _env(f"{network.upper()}_RPC_URL")
        or declared.get("rpc_url")
        or DEFAULT_RPC_URLS.get(network)
    )
    if not rpc_url:
        raise ConfigurationError(
            f"No RPC URL for network '{network}'. "
            f"Set {network.upper()}_RPC_URL or networks.{network}.rpc_url in config.json."
        )

    chain_id = declared.get("chain_id") or NETWORK_CHAIN_IDS.get(network)
    if chain_id is None:
        raise ConfigurationError(
            f"Unknown chain id for network '{network}'; set networks.{network}.chain_id"
        )
    return NetworkConfig(name=network, chain_id=int(chain_id), rpc_url=str(rpc_url))


def get_beneficiaries() -> dict[str, str]:
    configured = CONFIG.get("beneficiaries", {})
    out: dict[str, str] = {}
    for role, env_key in BENEFICIARY_ENV_KEYS.items():
        value = _env(env_key) or configured.get(role)
        out[role] = str(value).strip() if value else ""
    return out


def build_deployment_config(network: str | None = None) -> DeploymentConfig:
    private_key = get_private_key()
    if not private_key:
        raise ConfigurationError("Missing PRIVATE_KEY (or private_key in config.json)")
    return DeploymentConfig(
        network=get_network_config(network),
        private_key=normalize_private_key(private_key),
        beneficiaries=get_beneficiaries(),
        etherscan_api_key=get_etherscan_api_key(),
        artifacts_dir=get_artifacts_dir(),
    )


def build_audit_config(
    network: str | None = None,
    *,
    token_address: str | None = None,
    include_token: bool = False,
) -> AuditConfig:
    token = token_address or _env("IVM_TOKEN_ADDRESS") or CONFIG.get("token_address")
    return AuditConfig(
        network=get_network_config(network),
        token_address=str(token or "").strip(),
        etherscan_api_key=get_etherscan_api_key(),
        artifacts_dir=get_artifacts_dir(),
        include_token=include_token,
    )
