from __future__ import annotations

import logging
import time
from typing import Any, Callable, Iterable, List, Optional

import requests

from .chains import ClientRegistry, LogStrategy
from .config import Config
from .errors import RpcError
from .events import LogRecord
from .explorer_client import ExplorerClient
from .rpc_client import RpcClient

logger = logging.getLogger(__name__)


def _parse_records(entries: Iterable[Any]) -> List[LogRecord]:
    records: List[LogRecord] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        try:
            records.append(LogRecord.from_dict(entry))
        except ValueError as exc:
            logger.debug("Dropping unparseable log entry: %s", exc)
    return records


class ExplorerLogFetcher:
    """
    Paginated getLogs scan over an explorer API.
    - Pages advance fromBlock to the last returned block + 1.
    - A short page (< page_size) is the last one; max_pages bounds runaway scans.
    - Rate-limited pages are retried in place; once retries run out the scan stops
      and whatever was gathered so far is returned.
    """

    def __init__(
        self,
        explorer: ExplorerClient,
        page_size: int = 1000,
        max_pages: int = 500,
        page_delay: float = 0.35,
        rate_limit_backoff: float = 1.5,
        rate_limit_retries: int = 3,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.explorer = explorer
        self.page_size = page_size
        self.max_pages = max_pages
        self.page_delay = page_delay
        self.rate_limit_backoff = rate_limit_backoff
        self.rate_limit_retries = rate_limit_retries
        self._sleep = sleep

    @classmethod
    def from_config(cls, explorer: ExplorerClient, config: Config) -> "ExplorerLogFetcher":
        return cls(
            explorer,
            page_size=config.log_page_size,
            max_pages=config.log_max_pages,
            page_delay=config.log_page_delay,
            rate_limit_backoff=config.rate_limit_backoff,
            rate_limit_retries=config.rate_limit_retries,
        )

    def fetch(self, address: str, topic: str) -> Optional[List[LogRecord]]:
        """All logs for topic, or None when the scan found nothing."""
        records: List[LogRecord] = []
        from_block = 0
        pages = 0
        retries = 0

        while pages < self.max_pages:
            try:
                response = self.explorer.get_logs(address, topic, from_block)
            except (requests.RequestException, ValueError) as exc:
                logger.warning("Log scan for %s stopped at block %s: %s", topic, from_block, exc)
                break

            if response.rate_limited:
                if retries >= self.rate_limit_retries:
                    logger.warning(
                        "Rate limited %s times at block %s; returning %s logs gathered so far",
                        retries,
                        from_block,
                        len(records),
                    )
                    break
                retries += 1
                self._sleep(self.rate_limit_backoff)
                continue
            retries = 0
            pages += 1

            if not response.ok or not isinstance(response.result, list) or not response.result:
                break

            page = response.result
            batch = _parse_records(page)
            records.extend(batch)

            if len(page) < self.page_size or not batch:
                break

            from_block = batch[-1].block_number + 1
            self._sleep(self.page_delay)
        else:
            logger.warning("Log scan for %s hit the %s page cap", topic, self.max_pages)

        logger.debug("Explorer scan for %s on %s returned %s logs in %s pages", topic, address, len(records), pages)
        return records or None


class RpcLogFetcher:
    """Full-history filter over the contract's logs, matched client-side by topic0."""

    def __init__(self, client: RpcClient) -> None:
        self.client = client

    def fetch(self, address: str, topic: str) -> Optional[List[LogRecord]]:
        try:
            entries = self.client.get_logs_via_filter(address, from_block=0)
        except (RpcError, requests.RequestException, ValueError) as exc:
            logger.debug("RPC log filter for %s failed: %s", address, exc)
            return None

        wanted = topic.lower()
        matched = [r for r in _parse_records(entries) if r.topic0 == wanted]
        return matched or None


def select_log_fetcher(registry: ClientRegistry, chain_id: Any) -> Any:
    strategy = registry.log_strategy(chain_id)
    if strategy is LogStrategy.EXPLORER:
        explorer = registry.log_explorer(chain_id)
        if explorer is None:
            raise ValueError("Explorer log strategy selected without an explorer client.")
        return ExplorerLogFetcher.from_config(explorer, registry.config)
    if strategy is LogStrategy.RPC:
        return RpcLogFetcher(registry.get_client(chain_id))
    raise ValueError(f"Unhandled log strategy {strategy!r}.")
