from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .config import Config
from .errors import UnsupportedChain
from .explorer_client import ExplorerClient
from .rpc_client import RpcClient

logger = logging.getLogger(__name__)


class ExplorerKind(enum.Enum):
    # Keyless explorer on its own endpoint, no compatible log search.
    SEITRACE = "seitrace"
    # Etherscan V2 unified endpoint, requires ETHERSCAN_API_KEY.
    ETHERSCAN = "etherscan"


class LogStrategy(enum.Enum):
    EXPLORER = "explorer"
    RPC = "rpc"


@dataclass(frozen=True)
class ChainInfo:
    chain_id: int
    name: str
    rpc_url: str
    explorer: ExplorerKind
    native_symbol: str

    @property
    def needs_api_key(self) -> bool:
        return self.explorer is ExplorerKind.ETHERSCAN


SUPPORTED_CHAINS: Dict[int, ChainInfo] = {
    1: ChainInfo(1, "Ethereum", "https://eth.merkle.io", ExplorerKind.ETHERSCAN, "ETH"),
    8453: ChainInfo(8453, "Base", "https://mainnet.base.org", ExplorerKind.ETHERSCAN, "ETH"),
    42161: ChainInfo(42161, "Arbitrum", "https://arb1.arbitrum.io/rpc", ExplorerKind.ETHERSCAN, "ETH"),
    137: ChainInfo(137, "Polygon", "https://polygon-rpc.com", ExplorerKind.ETHERSCAN, "POL"),
    56: ChainInfo(56, "BSC", "https://56.rpc.thirdweb.com", ExplorerKind.ETHERSCAN, "BNB"),
    43114: ChainInfo(43114, "Avalanche", "https://api.avax.network/ext/bc/C/rpc", ExplorerKind.ETHERSCAN, "AVAX"),
    10: ChainInfo(10, "Optimism", "https://mainnet.optimism.io", ExplorerKind.ETHERSCAN, "ETH"),
    1329: ChainInfo(1329, "Sei", "https://evm-rpc.sei-apis.com", ExplorerKind.SEITRACE, "SEI"),
}


def get_chain(chain_id: Any) -> ChainInfo:
    """Look up a supported chain; unknown ids are an error, never a default."""
    try:
        key = int(str(chain_id).strip())
    except (TypeError, ValueError):
        raise UnsupportedChain(chain_id) from None
    info = SUPPORTED_CHAINS.get(key)
    if info is None:
        raise UnsupportedChain(chain_id)
    return info


class ClientRegistry:
    """
    Per-chain client factory.
    - RPC clients are created on first use and reused for the registry's lifetime.
    - Explorer clients are cheap and built per call from the chain's explorer kind.
    """

    def __init__(self, config: Config) -> None:
        self.config = config
        self._clients: Dict[int, RpcClient] = {}
        self._lock = threading.Lock()

    def chain(self, chain_id: Any) -> ChainInfo:
        return get_chain(chain_id)

    def get_client(self, chain_id: Any) -> RpcClient:
        info = get_chain(chain_id)
        cached = self._clients.get(info.chain_id)
        if cached is not None:
            return cached

        client = RpcClient(
            rpc_url=self.config.rpc_overrides.get(info.chain_id, info.rpc_url),
            timeout=self.config.request_timeout,
            max_retries=self.config.max_retries,
            backoff_seconds=self.config.backoff_seconds,
        )
        with self._lock:
            self._clients[info.chain_id] = client
        logger.debug("Created RPC client for chain %s (%s)", info.chain_id, client.rpc_url)
        return client

    def credentials_missing(self, chain_id: Any) -> bool:
        return get_chain(chain_id).needs_api_key and not self.config.has_etherscan_key

    def abi_explorers(self, chain_id: Any) -> List[ExplorerClient]:
        """Explorers to ask for a verified ABI, in preference order."""
        info = get_chain(chain_id)
        explorers: List[ExplorerClient] = []
        if info.explorer is ExplorerKind.SEITRACE:
            explorers.append(self._seitrace_client())
            # SeiTrace may lack the contract while Etherscan V2 has it.
            if self.config.has_etherscan_key:
                explorers.append(self._etherscan_client(info.chain_id))
        elif info.explorer is ExplorerKind.ETHERSCAN:
            if self.config.has_etherscan_key:
                explorers.append(self._etherscan_client(info.chain_id))
            else:
                logger.debug("ETHERSCAN_API_KEY not set; skipping verified ABI lookup on %s", info.name)
        else:
            raise ValueError(f"Unhandled explorer kind {info.explorer!r}.")
        return explorers

    def log_strategy(self, chain_id: Any) -> LogStrategy:
        info = get_chain(chain_id)
        if info.explorer is ExplorerKind.SEITRACE:
            return LogStrategy.RPC
        if info.explorer is ExplorerKind.ETHERSCAN:
            return LogStrategy.EXPLORER if self.config.has_etherscan_key else LogStrategy.RPC
        raise ValueError(f"Unhandled explorer kind {info.explorer!r}.")

    def log_explorer(self, chain_id: Any) -> Optional[ExplorerClient]:
        if self.log_strategy(chain_id) is not LogStrategy.EXPLORER:
            return None
        return self._etherscan_client(get_chain(chain_id).chain_id)

    def list_chains(self) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for chain_id, info in sorted(SUPPORTED_CHAINS.items()):
            out.append(
                {
                    "chain_id": chain_id,
                    "name": info.name,
                    "native_symbol": info.native_symbol,
                    "explorer": info.explorer.value,
                    "log_strategy": self.log_strategy(chain_id).value,
                    "needs_api_key": info.needs_api_key,
                }
            )
        return out

    def _seitrace_client(self) -> ExplorerClient:
        return ExplorerClient(
            base_url=self.config.seitrace_api_url,
            api_key=None,
            chain_id=None,
            timeout=self.config.request_timeout,
            max_retries=self.config.max_retries,
            backoff_seconds=self.config.backoff_seconds,
        )

    def _etherscan_client(self, chain_id: int) -> ExplorerClient:
        return ExplorerClient(
            base_url=self.config.etherscan_base_url,
            api_key=self.config.etherscan_api_key,
            chain_id=chain_id,
            timeout=self.config.request_timeout,
            max_retries=self.config.max_retries,
            backoff_seconds=self.config.backoff_seconds,
        )
