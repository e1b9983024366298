from __future__ import annotations

from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest
from eth_abi import encode

from airdrop_lens.chains import SUPPORTED_CHAINS
from airdrop_lens.config import Config
from airdrop_lens.explorer_client import ExplorerResponse, ResponseKind

DISTRIBUTOR = "0x1111111111111111111111111111111111111111"
IMPLEMENTATION = "0x2222222222222222222222222222222222222222"
TOKEN = "0x3333333333333333333333333333333333333333"
CLAIMANT = "0x4444444444444444444444444444444444444444"


def ok(result: Any) -> ExplorerResponse:
    return ExplorerResponse(ResponseKind.OK, result=result, message="OK")


def rate_limited() -> ExplorerResponse:
    return ExplorerResponse(ResponseKind.RATE_LIMITED, message="Max calls per sec rate limit reached (3/sec)")


def not_found(message: str = "No records found") -> ExplorerResponse:
    return ExplorerResponse(ResponseKind.ERROR, result=[], message=message)


def log_entry(topic: str, block: int, types: Optional[List[str]] = None, values: Optional[List[Any]] = None, data: Optional[str] = None) -> Dict[str, Any]:
    if data is None:
        data = "0x" + encode(types or [], values or []).hex()
    return {"data": data, "topics": [topic], "blockNumber": hex(block)}


def make_registry(client: Any, explorers: Optional[List[Any]] = None, chain_id: int = 1, credentials_missing: bool = False) -> MagicMock:
    registry = MagicMock()
    registry.config = Config()
    registry.chain.return_value = SUPPORTED_CHAINS[chain_id]
    registry.get_client.return_value = client
    registry.abi_explorers.return_value = list(explorers or [])
    registry.credentials_missing.return_value = credentials_missing
    return registry


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def keyed_config() -> Config:
    return Config(etherscan_api_key="test-key")
