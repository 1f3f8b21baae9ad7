"""Hardhat artifact and build-info access.

A fully qualified contract path looks like
``contracts/IVMToken.sol:TrancheVestingWallet``. Hardhat writes the artifact to
``<artifacts>/contracts/IVMToken.sol/TrancheVestingWallet.json`` and a sibling
``.dbg.json`` pointing at the build-info file that holds the standard-JSON
compiler input used for explorer verification.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ivm_deployer.core.errors import ConfigurationError


@dataclass(frozen=True)
class ContractArtifact:
    source_name: str
    contract_name: str
    abi: list[dict[str, Any]]
    bytecode: str
    path: Path

    @property
    def fully_qualified_name(self) -> str:
        return f"{self.source_name}:{self.contract_name}"


@dataclass(frozen=True)
class BuildInfo:
    solc_long_version: str
    standard_json_input: dict[str, Any]

    @property
    def compiler_version(self) -> str:
        return f"v{self.solc_long_version}"


def split_contract_path(contract_path: str) -> tuple[str, str]:
    source_name, sep, contract_name = contract_path.rpartition(":")
    if not sep or not source_name or not contract_name:
        raise ConfigurationError(
            f"Contract path must look like 'contracts/File.sol:Name', got {contract_path!r}"
        )
    return source_name, contract_name


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise ConfigurationError(f"Artifact not found: {path}")
    try:
        return json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Artifact {path} is not valid JSON: {exc}") from exc


def load_artifact(artifacts_dir: str | Path, contract_path: str) -> ContractArtifact:
    source_name, contract_name = split_contract_path(contract_path)
    path = Path(artifacts_dir) / source_name / f"{contract_name}.json"
    data = _read_json(path)

    bytecode = str(data.get("bytecode") or "")
    if bytecode and not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode
    if not bytecode or bytecode == "0x":
        raise ConfigurationError(f"Artifact {path} has empty bytecode")

    return ContractArtifact(
        source_name=source_name,
        contract_name=contract_name,
        abi=list(data.get("abi") or []),
        bytecode=bytecode,
        path=path,
    )


def load_build_info(artifacts_dir: str | Path, contract_path: str) -> BuildInfo:
    source_name, contract_name = split_contract_path(contract_path)
    dbg_path = Path(artifacts_dir) / source_name / f"{contract_name}.dbg.json"
    dbg = _read_json(dbg_path)
    ref = dbg.get("buildInfo")
    if not ref:
        raise ConfigurationError(f"{dbg_path} does not reference a build-info file")

    info = _read_json((dbg_path.parent / ref).resolve())
    version = info.get("solcLongVersion")
    std_input = info.get("input")
    if not version or not isinstance(std_input, dict):
        raise ConfigurationError(f"Build info for {contract_path} is incomplete")
    return BuildInfo(solc_long_version=str(version), standard_json_input=std_input)


def get_constructor_inputs(abi: list[dict[str, Any]]) -> list[dict[str, Any]]:
    for item in abi:
        if item.get("type") == "constructor":
            return list(item.get("inputs") or [])
    return []
