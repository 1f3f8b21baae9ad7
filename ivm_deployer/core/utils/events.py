from __future__ import annotations

from typing import Any

from eth_abi.abi import default_codec
from eth_abi.codec import ABICodec
from eth_utils import keccak
from hexbytes import HexBytes
from web3._utils.events import get_event_data


def event_signature(event_abi: dict[str, Any]) -> str:
    types = ",".join(str(i["type"]) for i in event_abi.get("inputs", []))
    return f"{event_abi['name']}({types})"


def event_topic(event_abi: dict[str, Any]) -> str:
    return "0x" + keccak(text=event_signature(event_abi)).hex()


def decode_event_log(
    event_abi: dict[str, Any],
    raw_log: dict[str, Any],
    codec: ABICodec = default_codec,
) -> dict[str, Any]:
    """Decode a raw ``eth_getLogs`` entry into ``{field_name: value}``.

    Addresses come back checksummed.
    """
    topics = [HexBytes(t) for t in raw_log.get("topics") or []]
    if not topics or topics[0] != HexBytes(event_topic(event_abi)):
        raise ValueError(f"Log is not a {event_abi['name']} event")

    indexed = [i for i in event_abi.get("inputs", []) if i.get("indexed")]
    if len(topics) != len(indexed) + 1:
        raise ValueError(
            f"{event_abi['name']} expects {len(indexed)} indexed topics, got {len(topics) - 1}"
        )

    log_entry = {
        "address": raw_log.get("address"),
        "topics": topics,
        "data": HexBytes(raw_log.get("data") or b""),
        "logIndex": raw_log.get("logIndex", 0),
        "transactionIndex": raw_log.get("transactionIndex", 0),
        "transactionHash": raw_log.get("transactionHash"),
        "blockHash": raw_log.get("blockHash"),
        "blockNumber": raw_log.get("blockNumber", 0),
    }
    evt = get_event_data(codec, event_abi, log_entry)
    return dict(evt["args"])
