from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import httpx
from eth_abi import encode
from eth_utils import collapse_if_tuple
from loguru import logger

from ivm_deployer.core.constants.base import DEFAULT_HTTP_TIMEOUT
from ivm_deployer.core.constants.networks import (
    CHAIN_EXPLORER_URLS,
    ETHERSCAN_V2_API_URL,
)
from ivm_deployer.core.errors import VerificationServiceError
from ivm_deployer.core.utils.abi_caster import cast_args
from ivm_deployer.core.utils.artifacts import (
    get_constructor_inputs,
    load_artifact,
    load_build_info,
)
from ivm_deployer.core.utils.retry import exponential_backoff_s


def get_etherscan_address_link(chain_id: int, address: str) -> str | None:
    base_url = CHAIN_EXPLORER_URLS.get(chain_id)
    if not base_url:
        return None
    return f"{base_url}address/{address}#code"


def encode_constructor_args(
    abi: list[dict[str, Any]], constructor_args: list[Any]
) -> str:
    """ABI-encode constructor arguments as bare hex (no ``0x``)."""
    inputs = get_constructor_inputs(abi)
    if len(inputs) != len(constructor_args):
        raise ValueError(
            f"Constructor expects {len(inputs)} arguments, got {len(constructor_args)}"
        )
    if not inputs:
        return ""
    types = [collapse_if_tuple(i) for i in inputs]
    return encode(types, cast_args(list(constructor_args), inputs)).hex()


async def submit_verification(
    *,
    chain_id: int,
    contract_address: str,
    contract_path: str,
    constructor_args: list[Any],
    api_key: str,
    artifacts_dir: str | Path,
    client: httpx.AsyncClient | None = None,
    check_attempts: int = 10,
    max_delay_s: float = 30.0,
) -> str:
    """Submit *contract_address* to Etherscan V2 and wait for a terminal answer.

    Uses standard-JSON-input mode with the hardhat build info of
    *contract_path*. Returns the verification GUID on success.

    Raises:
        VerificationServiceError: Carries Etherscan's message verbatim for any
            non-success answer, including "already verified".
    """
    artifact = load_artifact(artifacts_dir, contract_path)
    build_info = load_build_info(artifacts_dir, contract_path)

    payload = {
        "apikey": api_key,
        "module": "contract",
        "action": "verifysourcecode",
        "sourceCode": json.dumps(build_info.standard_json_input),
        "codeformat": "solidity-standard-json-input",
        "contractaddress": contract_address,
        "contractname": artifact.fully_qualified_name,
        "compilerversion": build_info.compiler_version,
    }
    encoded_args = encode_constructor_args(artifact.abi, constructor_args)
    if encoded_args:
        payload["constructorArguements"] = encoded_args  # Etherscan's typo is intentional

    async def _run(c: httpx.AsyncClient) -> str:
        resp = await c.post(
            ETHERSCAN_V2_API_URL,
            params={"chainid": str(chain_id)},
            data=payload,
        )
        resp.raise_for_status()
        data = resp.json()

        if str(data.get("status")) != "1":
            msg = str(
                data.get("result", "") or data.get("message", "") or "Unknown error"
            )
            raise VerificationServiceError(msg)

        guid = str(data.get("result") or "").strip()
        if not guid:
            raise VerificationServiceError("Etherscan verification returned empty GUID")
        logger.info(f"Etherscan verification submitted, GUID: {guid}")

        check_params = {
            "chainid": str(chain_id),
            "apikey": api_key,
            "module": "contract",
            "action": "checkverifystatus",
            "guid": guid,
        }
        for attempt in range(check_attempts):
            await asyncio.sleep(
                exponential_backoff_s(attempt, base_delay_s=1, max_delay_s=max_delay_s)
            )
            resp = await c.get(ETHERSCAN_V2_API_URL, params=check_params)
            resp.raise_for_status()
            data = resp.json()

            result_msg = str(data.get("result", ""))
            if str(data.get("status")) == "1":
                logger.info(f"Contract verified on Etherscan: {contract_address}")
                return guid
            if "pending" in result_msg.lower():
                logger.debug(f"Verification pending (attempt {attempt + 1})...")
                continue
            raise VerificationServiceError(result_msg or "Unknown error")

        raise VerificationServiceError(
            f"Etherscan verification timed out after {check_attempts} status checks"
        )

    if client is not None:
        return await _run(client)

    async with httpx.AsyncClient(timeout=DEFAULT_HTTP_TIMEOUT) as c:
        return await _run(c)
