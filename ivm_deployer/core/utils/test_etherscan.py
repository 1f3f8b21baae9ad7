import json
from pathlib import Path
from urllib.parse import parse_qs

import httpx
import pytest
from eth_abi import decode

from ivm_deployer.core.errors import VerificationServiceError
from ivm_deployer.core.utils.etherscan import (
    encode_constructor_args,
    get_etherscan_address_link,
    submit_verification,
)
from ivm_deployer.testing.artifacts import SOLC_LONG_VERSION, write_hardhat_artifact

VESTING = "contracts/IVMToken.sol:TrancheVestingWallet"
CONTRACT = "0x" + "cd" * 20
CTOR_ABI = [
    {
        "type": "constructor",
        "inputs": [
            {"name": "token", "type": "address"},
            {"name": "start", "type": "uint64"},
        ],
    }
]


def _mock_client(responses: list[dict], seen: list[httpx.Request]) -> httpx.AsyncClient:
    answers = iter(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=next(answers))

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def artifacts_dir(tmp_path: Path) -> Path:
    write_hardhat_artifact(tmp_path, VESTING, abi=CTOR_ABI)
    return tmp_path


def test_address_link():
    assert get_etherscan_address_link(11155111, CONTRACT) == (
        f"https://sepolia.etherscan.io/address/{CONTRACT}#code"
    )
    assert get_etherscan_address_link(31337, CONTRACT) is None


def test_encode_constructor_args_casts_strings():
    encoded = encode_constructor_args(CTOR_ABI, [CONTRACT, "1700000000"])
    assert not encoded.startswith("0x")
    token, start = decode(["address", "uint64"], bytes.fromhex(encoded))
    assert token.lower() == CONTRACT
    assert start == 1_700_000_000


def test_encode_constructor_args_count_mismatch():
    with pytest.raises(ValueError, match="expects 2 arguments, got 1"):
        encode_constructor_args(CTOR_ABI, [CONTRACT])


def test_encode_without_constructor_is_empty():
    assert encode_constructor_args([], []) == ""


@pytest.mark.asyncio
async def test_submit_then_poll_until_verified(artifacts_dir: Path):
    seen: list[httpx.Request] = []
    responses = [
        {"status": "1", "message": "OK", "result": "guid-123"},
        {"status": "0", "message": "NOTOK", "result": "Pending in queue"},
        {"status": "1", "message": "OK", "result": "Pass - Verified"},
    ]
    async with _mock_client(responses, seen) as client:
        guid = await submit_verification(
            chain_id=11155111,
            contract_address=CONTRACT,
            contract_path=VESTING,
            constructor_args=[CONTRACT, "5"],
            api_key="key",
            artifacts_dir=artifacts_dir,
            client=client,
            max_delay_s=0,
        )

    assert guid == "guid-123"
    assert len(seen) == 3

    submit = seen[0]
    assert submit.method == "POST"
    assert submit.url.params["chainid"] == "11155111"
    form = {k: v[0] for k, v in parse_qs(submit.content.decode()).items()}
    assert form["action"] == "verifysourcecode"
    assert form["codeformat"] == "solidity-standard-json-input"
    assert form["contractname"] == VESTING
    assert form["compilerversion"] == f"v{SOLC_LONG_VERSION}"
    assert json.loads(form["sourceCode"])["language"] == "Solidity"
    assert form["constructorArguements"] == encode_constructor_args(CTOR_ABI, [CONTRACT, "5"])

    assert seen[1].url.params["action"] == "checkverifystatus"
    assert seen[1].url.params["guid"] == "guid-123"


@pytest.mark.asyncio
async def test_rejected_submission_carries_explorer_message(artifacts_dir: Path):
    seen: list[httpx.Request] = []
    responses = [
        {"status": "0", "message": "NOTOK", "result": "Contract source code already verified"}
    ]
    async with _mock_client(responses, seen) as client:
        with pytest.raises(VerificationServiceError, match="already verified"):
            await submit_verification(
                chain_id=1,
                contract_address=CONTRACT,
                contract_path=VESTING,
                constructor_args=[CONTRACT, 1],
                api_key="key",
                artifacts_dir=artifacts_dir,
                client=client,
            )
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_failed_status_check_raises(artifacts_dir: Path):
    seen: list[httpx.Request] = []
    responses = [
        {"status": "1", "result": "guid-1"},
        {"status": "0", "result": "Fail - Unable to verify"},
    ]
    async with _mock_client(responses, seen) as client:
        with pytest.raises(VerificationServiceError, match="Unable to verify"):
            await submit_verification(
                chain_id=1,
                contract_address=CONTRACT,
                contract_path=VESTING,
                constructor_args=[CONTRACT, 1],
                api_key="key",
                artifacts_dir=artifacts_dir,
                client=client,
                max_delay_s=0,
            )


@pytest.mark.asyncio
async def test_status_polling_gives_up(artifacts_dir: Path):
    seen: list[httpx.Request] = []
    responses = [{"status": "1", "result": "guid-1"}] + [
        {"status": "0", "result": "Pending in queue"}
    ] * 2
    async with _mock_client(responses, seen) as client:
        with pytest.raises(VerificationServiceError, match="timed out after 2"):
            await submit_verification(
                chain_id=1,
                contract_address=CONTRACT,
                contract_path=VESTING,
                constructor_args=[CONTRACT, 1],
                api_key="key",
                artifacts_dir=artifacts_dir,
                client=client,
                check_attempts=2,
                max_delay_s=0,
            )
