from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional, Sequence, Tuple

import requests

from .abi import ZERO_ADDRESS, AbiFunction, AbiParam
from .chains import ClientRegistry
from .discovery import AbiDiscovery
from .errors import LensError, NoClaimEventsFound
from .events import CLAIM_EVENT_SCHEMAS, EventTopicSchema, LogRecord
from .log_fetcher import select_log_fetcher
from .models import ClaimStats
from .rpc_client import CallResult, RpcClient
from .templates import ERC20_BALANCE_OF, ERC20_DECIMALS, ERC20_NAME, ERC20_SYMBOL

logger = logging.getLogger(__name__)

TOKEN_GETTER_NAMES = ("token", "rewardToken", "claimToken", "distributionToken")

# Address getters that never return the distributed token.
NON_TOKEN_GETTERS = {
    "owner",
    "pendingowner",
    "getowner",
    "admin",
    "pendingadmin",
    "getadmin",
    "proxyadmin",
    "implementation",
}

DEFAULT_DECIMALS = 18


def _address_getter(name: str) -> AbiFunction:
    return AbiFunction(name=name, outputs=(AbiParam("", "address"),), state_mutability="view")


def _as_address(result: CallResult) -> Optional[str]:
    if not result.ok or not isinstance(result.value, str):
        return None
    value = result.value.lower()
    return None if value == ZERO_ADDRESS else value


class ClaimAccounting:
    """Reconstruct claimed vs. remaining totals of a distributor from its claim events."""

    def __init__(
        self,
        registry: ClientRegistry,
        discovery: AbiDiscovery,
        schemas: Sequence[EventTopicSchema] = CLAIM_EVENT_SCHEMAS,
        fetcher_factory: Callable[[ClientRegistry, Any], Any] = select_log_fetcher,
        max_workers: int = 4,
    ) -> None:
        self.registry = registry
        self.discovery = discovery
        self.schemas = tuple(schemas)
        self.fetcher_factory = fetcher_factory
        self.max_workers = max(1, max_workers)

    def compute(self, address: str, chain_id: Any) -> ClaimStats:
        chain = self.registry.chain(chain_id)
        client = self.registry.get_client(chain.chain_id)

        token = self.resolve_token(client, address, chain.chain_id)
        schema, total_claimed, count = self.scan_claims(address, chain.chain_id)

        remaining, decimals, symbol, name = 0, DEFAULT_DECIMALS, None, None
        if token:
            remaining, decimals, symbol, name = self.read_token_metadata(client, token, address)
        else:
            logger.info("No reward token resolved for %s; remaining balance assumed 0", address)

        return ClaimStats(
            total_claimed=total_claimed,
            remaining_balance=remaining,
            claim_count=count,
            decimals=decimals,
            token_address=token,
            token_symbol=symbol,
            token_name=name,
            event_signature=schema.signature,
        )

    def resolve_token(self, client: RpcClient, address: str, chain_id: int) -> Optional[str]:
        for name in TOKEN_GETTER_NAMES:
            token = _as_address(client.try_read_contract(address, _address_getter(name)))
            if token:
                logger.debug("Token for %s resolved via %s(): %s", address, name, token)
                return token

        for fn in self._token_candidates(address, chain_id):
            token = _as_address(client.try_read_contract(address, fn))
            if token and self._looks_like_erc20(client, token):
                logger.debug("Token for %s resolved via discovered %s(): %s", address, fn.name, token)
                return token
        return None

    def _token_candidates(self, address: str, chain_id: int) -> List[AbiFunction]:
        try:
            discovered = self.discovery.discover(address, chain_id)
        except (LensError, requests.RequestException, ValueError) as exc:
            logger.debug("ABI discovery for token lookup on %s failed: %s", address, exc)
            return []
        return [
            fn
            for fn in discovered.functions
            if not fn.has_inputs
            and fn.returns_single_address
            and fn.name.lower() not in NON_TOKEN_GETTERS
            and fn.name not in TOKEN_GETTER_NAMES
        ]

    def _looks_like_erc20(self, client: RpcClient, token: str) -> bool:
        try:
            if not client.has_code(token):
                return False
        except (LensError, requests.RequestException, ValueError) as exc:
            logger.debug("Code check for candidate token %s failed: %s", token, exc)
            return False
        return client.try_read_contract(token, ERC20_DECIMALS).ok

    def scan_claims(self, address: str, chain_id: int) -> Tuple[EventTopicSchema, int, int]:
        """Sum amounts of the first event shape that has logs; later shapes are not fetched."""
        fetcher = self.fetcher_factory(self.registry, chain_id)
        for schema in self.schemas:
            logs = fetcher.fetch(address, schema.topic)
            if not logs:
                continue
            total = sum_claimed(schema, logs)
            logger.info("Matched %s logs of %s on %s", len(logs), schema.signature, address)
            return schema, total, len(logs)
        raise NoClaimEventsFound(address)

    def read_token_metadata(
        self, client: RpcClient, token: str, holder: str
    ) -> Tuple[int, int, Optional[str], Optional[str]]:
        calls: List[Tuple[AbiFunction, Sequence[Any]]] = [
            (ERC20_BALANCE_OF, [holder]),
            (ERC20_DECIMALS, []),
            (ERC20_SYMBOL, []),
            (ERC20_NAME, []),
        ]
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            balance, decimals, symbol, name = pool.map(lambda c: client.try_read_contract(token, c[0], c[1]), calls)

        return (
            balance.value if balance.ok and isinstance(balance.value, int) else 0,
            int(decimals.value) if decimals.ok and isinstance(decimals.value, int) else DEFAULT_DECIMALS,
            symbol.value if symbol.ok and isinstance(symbol.value, str) else None,
            name.value if name.ok and isinstance(name.value, str) else None,
        )


def sum_claimed(schema: EventTopicSchema, logs: Sequence[LogRecord]) -> int:
    total = 0
    skipped = 0
    for record in logs:
        amount = schema.amount_of(record)
        if amount is None:
            skipped += 1
            continue
        total += amount
    if skipped:
        logger.warning("Skipped %s malformed %s logs", skipped, schema.signature)
    return total
