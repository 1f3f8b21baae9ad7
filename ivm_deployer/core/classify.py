"""Message-marker classifiers for errors raised by external services.

Both the block explorer and the RPC backends only signal these conditions
through free-form text, so the recognised phrases are kept in one table each.
Matching is a case-sensitive substring test.
"""

from __future__ import annotations

from web3.exceptions import BadFunctionCallOutput

ALREADY_VERIFIED_MARKERS: tuple[str, ...] = (
    "Already Verified",
    "already verified",
)

NO_DECODABLE_DATA_MARKERS: tuple[str, ...] = (
    "BAD_DATA",
    "Could not decode contract function call",
    "could not decode result data",
    "Could not transact with/call contract function",
)


def _contains_marker(message: str, markers: tuple[str, ...]) -> bool:
    return any(marker in message for marker in markers)


def is_already_verified(message: str | None) -> bool:
    if not message:
        return False
    return _contains_marker(str(message), ALREADY_VERIFIED_MARKERS)


def is_no_decodable_data(exc: BaseException) -> bool:
    if isinstance(exc, BadFunctionCallOutput):
        return True
    return _contains_marker(str(exc), NO_DECODABLE_DATA_MARKERS)
