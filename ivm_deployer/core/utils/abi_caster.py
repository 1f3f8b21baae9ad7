"""Casting of loosely typed values (config strings, getter results) to ABI types.

Handles ``address``, ``bool``, ``uint*``/``int*``, ``bytes*``, ``string``,
arrays, and nested tuples. Used to prepare constructor arguments before they
are ABI-encoded for explorer verification.
"""

from __future__ import annotations

from typing import Any

from web3 import Web3


def cast_single(arg: Any, abi_type: str) -> Any:
    t = abi_type.strip()

    if t == "bool":
        if isinstance(arg, bool):
            return arg
        if isinstance(arg, str):
            return arg.lower() in ("true", "1", "yes")
        return bool(arg)

    if t.startswith(("uint", "int")):
        if isinstance(arg, str) and arg.startswith("0x"):
            return int(arg, 16)
        return int(arg)

    if t == "address":
        return Web3.to_checksum_address(str(arg))

    if t == "string":
        return str(arg)

    if t.startswith("bytes"):
        if isinstance(arg, bytes):
            return arg
        s = str(arg)
        if s.startswith("0x"):
            return bytes.fromhex(s[2:])
        return s.encode("utf-8")

    return arg


def cast_args(args: list[Any], abi_inputs: list[dict[str, Any]]) -> list[Any]:
    """Cast *args* positionally to *abi_inputs*, recursing into arrays and tuples."""
    if len(args) != len(abi_inputs):
        raise ValueError(
            f"Argument count mismatch: got {len(args)}, expected {len(abi_inputs)}"
        )
    return [_cast_value(arg, inp) for arg, inp in zip(args, abi_inputs, strict=True)]


def _cast_value(arg: Any, inp: dict[str, Any]) -> Any:
    t = str(inp.get("type", "")).strip()
    components = inp.get("components")

    # uint256[], address[3], tuple[]
    if t.endswith("]"):
        element_inp: dict[str, Any] = {"type": t[: t.rindex("[")]}
        if components:
            element_inp["components"] = components
        if not isinstance(arg, (list, tuple)):
            raise TypeError(f"Expected list for {t}, got {type(arg).__name__}")
        return [_cast_value(item, element_inp) for item in arg]

    if t == "tuple" and components:
        if isinstance(arg, dict):
            ordered = [
                arg.get(c["name"], arg.get(str(i))) for i, c in enumerate(components)
            ]
            return tuple(cast_args(ordered, components))
        if isinstance(arg, (list, tuple)):
            return tuple(cast_args(list(arg), components))
        raise TypeError(f"Expected dict/list/tuple for tuple, got {type(arg).__name__}")

    return cast_single(arg, t)
