from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from eth_abi import decode, encode
from eth_utils import keccak

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
READ_ONLY_MUTABILITY = {"view", "pure"}
ZERO_ADDRESS = "0x" + "0" * 40


@dataclass(frozen=True)
class AbiParam:
    name: str
    type: str
    components: Tuple["AbiParam", ...] = ()

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "AbiParam":
        components = tuple(cls.from_dict(c) for c in raw.get("components") or [] if isinstance(c, dict))
        return cls(name=str(raw.get("name") or ""), type=str(raw.get("type") or ""), components=components)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"name": self.name, "type": self.type}
        if self.components:
            out["components"] = [c.to_dict() for c in self.components]
        return out

    @property
    def canonical_type(self) -> str:
        """Type string as used in signatures, with tuples expanded to (t1,t2)."""
        if not self.type.startswith("tuple"):
            return _normalize_type(self.type)
        suffix = self.type[len("tuple"):]
        inner = ",".join(c.canonical_type for c in self.components)
        return f"({inner}){suffix}"


@dataclass(frozen=True)
class AbiFunction:
    name: str
    inputs: Tuple[AbiParam, ...] = ()
    outputs: Tuple[AbiParam, ...] = ()
    state_mutability: str = "view"

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "AbiFunction":
        return cls(
            name=str(raw.get("name") or ""),
            inputs=tuple(AbiParam.from_dict(p) for p in raw.get("inputs") or [] if isinstance(p, dict)),
            outputs=tuple(AbiParam.from_dict(p) for p in raw.get("outputs") or [] if isinstance(p, dict)),
            state_mutability=str(raw.get("stateMutability") or _legacy_mutability(raw)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "name": self.name,
            "stateMutability": self.state_mutability,
            "inputs": [p.to_dict() for p in self.inputs],
            "outputs": [p.to_dict() for p in self.outputs],
        }

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(p.canonical_type for p in self.inputs)})"

    @property
    def selector(self) -> bytes:
        return keccak(text=self.signature)[:4]

    @property
    def has_inputs(self) -> bool:
        return bool(self.inputs)

    @property
    def returns_single_address(self) -> bool:
        return len(self.outputs) == 1 and self.outputs[0].type == "address"

    def encode_call(self, args: Sequence[Any] = ()) -> str:
        if len(args) != len(self.inputs):
            raise ValueError(
                f"Argument count mismatch for {self.name}: expected {len(self.inputs)}, got {len(args)}."
            )
        types = [p.canonical_type for p in self.inputs]
        return "0x" + (self.selector + encode(types, list(args))).hex()

    def decode_output(self, data: bytes) -> Any:
        """Decode return data; single outputs are unwrapped."""
        if not self.outputs:
            return None
        values = decode([p.canonical_type for p in self.outputs], data)
        if len(values) == 1:
            return values[0]
        return values


def _legacy_mutability(raw: Dict[str, Any]) -> str:
    # Pre-0.5 ABIs carry constant/payable flags instead of stateMutability.
    if raw.get("constant"):
        return "view"
    if raw.get("payable"):
        return "payable"
    return "nonpayable"


def _normalize_type(typ: str) -> str:
    # Etherscan occasionally reports the bare aliases.
    base = typ.split("[", 1)[0]
    suffix = typ[len(base):]
    if base == "uint":
        return "uint256" + suffix
    if base == "int":
        return "int256" + suffix
    return typ


def parse_abi(raw: Any) -> List[Dict[str, Any]]:
    """Parse an ABI given as a JSON string or an already-decoded list."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError("ABI is not valid JSON.") from exc
    if not isinstance(raw, list):
        raise ValueError("ABI must be a JSON array.")
    return [item for item in raw if isinstance(item, dict)]


def view_functions(abi_items: Iterable[Dict[str, Any]]) -> List[AbiFunction]:
    """Read-only functions of an ABI, deduplicated by name (first occurrence wins)."""
    seen: Dict[str, AbiFunction] = {}
    for item in abi_items:
        if item.get("type") != "function":
            continue
        fn = AbiFunction.from_dict(item)
        if not fn.name or fn.state_mutability not in READ_ONLY_MUTABILITY:
            continue
        seen.setdefault(fn.name, fn)
    return list(seen.values())


def topic_hash(event_signature: str) -> str:
    return "0x" + keccak(text=event_signature).hex()


def normalize_address(address: str) -> str:
    if not isinstance(address, str):
        raise ValueError("Address must be a string.")

    candidate = address.strip()
    if not candidate.startswith("0x"):
        candidate = f"0x{candidate}"

    if not ADDRESS_PATTERN.match(candidate):
        raise ValueError("Invalid address format. Expected 0x-prefixed 40 hex characters.")

    return candidate.lower()


def hex_to_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if not isinstance(value, str):
        raise ValueError("Expected a hex string.")
    body = value[2:] if value.startswith("0x") else value
    if len(body) % 2 != 0:
        body = "0" + body
    return bytes.fromhex(body)


def storage_word_to_address(word: Optional[str]) -> Optional[str]:
    """Address held in the low 20 bytes of a storage word, or None when zero."""
    if not word or not isinstance(word, str):
        return None
    body = word[2:] if word.startswith("0x") else word
    if not body or int(body, 16) == 0:
        return None
    return "0x" + body.rjust(64, "0")[-40:].lower()


def coerce_args(fn: AbiFunction, args: Optional[Sequence[Any]]) -> List[Any]:
    """Convert loosely typed (usually string) arguments to values eth-abi can encode."""
    values = list(args or [])
    if len(values) != len(fn.inputs):
        raise ValueError(f"{fn.name} expects {len(fn.inputs)} argument(s), got {len(values)}.")
    return [_coerce(param.canonical_type, value, param.name or f"arg{idx}") for idx, (param, value) in enumerate(zip(fn.inputs, values))]


def _coerce(typ: str, value: Any, field_name: str) -> Any:
    if typ.endswith("]"):
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError as exc:
                raise ValueError(f"{field_name} must be a JSON array.") from exc
        if not isinstance(value, (list, tuple)):
            raise ValueError(f"{field_name} must be an array.")
        inner = typ[: typ.rindex("[")]
        return [_coerce(inner, item, field_name) for item in value]

    if typ.startswith(("uint", "int")):
        if isinstance(value, bool):
            raise ValueError(f"{field_name} must be an integer.")
        if isinstance(value, int):
            return value
        text = str(value if value not in (None, "") else "0").strip()
        try:
            return int(text, 0)
        except ValueError as exc:
            raise ValueError(f"{field_name} must be an integer.") from exc

    if typ == "bool":
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() == "true"

    if typ == "address":
        return normalize_address(str(value))

    if typ.startswith("bytes"):
        return hex_to_bytes(value or "0x")

    if typ == "string":
        return "" if value is None else str(value)

    return value


def serialize_value(value: Any) -> Any:
    """Make decoded ABI values JSON-safe; integers become decimal strings."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [serialize_value(v) for v in value]
    if isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    return value
