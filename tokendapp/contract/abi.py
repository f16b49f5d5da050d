"""ERC-20 interface description and calldata/log codec.

ABI encoding itself is delegated to eth-abi; this module only picks the
right types for each function or event of the token contract.
"""
from __future__ import annotations

from typing import Any, Sequence

from eth_abi import decode, encode
from eth_utils import (
    event_signature_to_log_topic,
    function_signature_to_4byte_selector,
    to_checksum_address,
)


def _fn(name: str, inputs: list[tuple[str, str]], outputs: list[str], mutability: str) -> dict:
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": "", "type": t} for t in outputs],
        "stateMutability": mutability,
    }


def _event(name: str, inputs: list[tuple[str, str, bool]]) -> dict:
    return {
        "type": "event",
        "name": name,
        "inputs": [{"name": n, "type": t, "indexed": i} for n, t, i in inputs],
        "anonymous": False,
    }


ERC20_ABI: list[dict[str, Any]] = [
    _fn("name", [], ["string"], "view"),
    _fn("symbol", [], ["string"], "view"),
    _fn("decimals", [], ["uint8"], "view"),
    _fn("totalSupply", [], ["uint256"], "view"),
    _fn("balanceOf", [("account", "address")], ["uint256"], "view"),
    _fn("allowance", [("owner", "address"), ("spender", "address")], ["uint256"], "view"),
    _fn("transfer", [("to", "address"), ("value", "uint256")], ["bool"], "nonpayable"),
    _fn("approve", [("spender", "address"), ("value", "uint256")], ["bool"], "nonpayable"),
    _fn(
        "transferFrom",
        [("from", "address"), ("to", "address"), ("value", "uint256")],
        ["bool"],
        "nonpayable",
    ),
    _fn("burn", [("amount", "uint256")], [], "nonpayable"),
    _event(
        "Transfer",
        [("from", "address", True), ("to", "address", True), ("value", "uint256", False)],
    ),
    _event(
        "Approval",
        [("owner", "address", True), ("spender", "address", True), ("value", "uint256", False)],
    ),
]


def _find(abi: Sequence[dict[str, Any]], kind: str, name: str) -> dict[str, Any]:
    for entry in abi:
        if entry.get("type") == kind and entry.get("name") == name:
            return entry
    raise ValueError(f"{kind.capitalize()} {name} not found in ABI")


def _signature(entry: dict[str, Any]) -> str:
    types = ",".join(inp["type"] for inp in entry.get("inputs", []))
    return f"{entry['name']}({types})"


def encode_call(function: str, args: Sequence[Any], abi: Sequence[dict] = ERC20_ABI) -> str:
    """ABI-encode a function call as 0x-prefixed calldata."""
    entry = _find(abi, "function", function)
    input_types = [inp["type"] for inp in entry.get("inputs", [])]
    selector = function_signature_to_4byte_selector(_signature(entry))
    encoded_args = encode(input_types, list(args)) if input_types else b""
    return "0x" + selector.hex() + encoded_args.hex()


def _normalize(abi_type: str, value: Any) -> Any:
    if abi_type == "address":
        return to_checksum_address(value)
    return value


def decode_result(function: str, data: str, abi: Sequence[dict] = ERC20_ABI) -> Any:
    """Decode the return data of ``function``; single outputs are unwrapped."""
    entry = _find(abi, "function", function)
    output_types = [out["type"] for out in entry.get("outputs", [])]
    if not output_types:
        return None

    raw = bytes.fromhex(data[2:] if data.startswith("0x") else data)
    decoded = [
        _normalize(t, v) for t, v in zip(output_types, decode(output_types, raw))
    ]
    if len(decoded) == 1:
        return decoded[0]
    return tuple(decoded)


def event_topic(event: str, abi: Sequence[dict] = ERC20_ABI) -> str:
    """topic0 of ``event`` as 0x-prefixed hex."""
    entry = _find(abi, "event", event)
    return "0x" + event_signature_to_log_topic(_signature(entry)).hex()


def decode_log(event: str, log: dict[str, Any], abi: Sequence[dict] = ERC20_ABI) -> dict[str, Any]:
    """Decode an ``eth_getLogs`` entry into ``{arg_name: value}``."""
    entry = _find(abi, "event", event)
    topics = list(log.get("topics", []))[1:]
    indexed = [inp for inp in entry["inputs"] if inp.get("indexed")]
    plain = [inp for inp in entry["inputs"] if not inp.get("indexed")]

    if len(topics) != len(indexed):
        raise ValueError(f"{event} log has {len(topics)} indexed topics, expected {len(indexed)}")

    fields: dict[str, Any] = {}
    for inp, topic in zip(indexed, topics):
        raw = bytes.fromhex(topic[2:] if topic.startswith("0x") else topic)
        fields[inp["name"]] = _normalize(inp["type"], decode([inp["type"]], raw)[0])

    data = log.get("data", "0x")
    raw_data = bytes.fromhex(data[2:] if data.startswith("0x") else data)
    plain_types = [inp["type"] for inp in plain]
    for inp, value in zip(plain, decode(plain_types, raw_data) if plain_types else ()):
        fields[inp["name"]] = _normalize(inp["type"], value)
    return fields
