"""
Known claim event shapes and the log records they are decoded from.

Only the non-indexed part of an event lives in a log's data payload, so each
schema lists just those parameters plus where the claimed amount sits in the
decoded tuple.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from eth_abi import decode
from eth_abi.exceptions import DecodingError

from .abi import AbiParam, hex_to_bytes, topic_hash

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogRecord:
    data: bytes
    topics: Tuple[str, ...]
    block_number: int

    @property
    def topic0(self) -> Optional[str]:
        return self.topics[0] if self.topics else None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "LogRecord":
        """Build from an explorer or JSON-RPC log object; raises ValueError on malformed fields."""
        topics = tuple(str(t).lower() for t in raw.get("topics") or [])
        return cls(
            data=_data_bytes(raw.get("data")),
            topics=topics,
            block_number=_parse_block_number(raw.get("blockNumber")),
        )


def _data_bytes(value: Any) -> bytes:
    # Undecodable payloads stay empty and are rejected later by the schema.
    try:
        return hex_to_bytes(value or "0x")
    except ValueError:
        return b""


def _parse_block_number(value: Any) -> int:
    if isinstance(value, int):
        return value
    text = str(value or "").strip()
    if not text:
        raise ValueError("log is missing blockNumber.")
    return int(text, 16) if text.lower().startswith("0x") else int(text)


@dataclass(frozen=True)
class EventTopicSchema:
    signature: str
    topic: str
    data_params: Tuple[AbiParam, ...]
    amount_index: int

    @classmethod
    def build(cls, signature: str, data_params: List[Tuple[str, str]], amount_index: int) -> "EventTopicSchema":
        params = tuple(AbiParam(name=name, type=typ) for name, typ in data_params)
        if not 0 <= amount_index < len(params):
            raise ValueError(f"amount_index {amount_index} out of range for {signature}.")
        return cls(signature=signature, topic=topic_hash(signature), data_params=params, amount_index=amount_index)

    @property
    def data_types(self) -> List[str]:
        return [p.type for p in self.data_params]

    def decode(self, record: LogRecord) -> Optional[Tuple[Any, ...]]:
        """Decoded data payload, or None when the payload does not fit this schema."""
        try:
            return tuple(decode(self.data_types, record.data))
        except DecodingError as exc:
            logger.debug("Skipping malformed %s log at block %s: %s", self.signature, record.block_number, exc)
            return None

    def amount_of(self, record: LogRecord) -> Optional[int]:
        values = self.decode(record)
        if values is None:
            return None
        amount = values[self.amount_index]
        return amount if isinstance(amount, int) and not isinstance(amount, bool) else None


# Priority order: the first shape with any logs is taken as the contract's claim event.
CLAIM_EVENT_SCHEMAS: Tuple[EventTopicSchema, ...] = (
    # Merkle distributor: Claimed(uint256 index, address account, uint256 amount)
    EventTopicSchema.build(
        "Claimed(uint256,address,uint256)",
        [("index", "uint256"), ("account", "address"), ("amount", "uint256")],
        amount_index=2,
    ),
    # Claimed(address account, uint256 amount)
    EventTopicSchema.build(
        "Claimed(address,uint256)",
        [("account", "address"), ("amount", "uint256")],
        amount_index=1,
    ),
    # TokensClaimed(address indexed claimant, uint256 amount)
    EventTopicSchema.build(
        "TokensClaimed(address,uint256)",
        [("amount", "uint256")],
        amount_index=0,
    ),
)

_SCHEMAS_BY_TOPIC: Dict[str, EventTopicSchema] = {s.topic: s for s in CLAIM_EVENT_SCHEMAS}


def resolve_schema(topic: Optional[str]) -> Optional[EventTopicSchema]:
    if not topic:
        return None
    return _SCHEMAS_BY_TOPIC.get(topic.lower())
