from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence, Union

from .abi import AbiFunction, coerce_args, normalize_address, serialize_value
from .chains import ClientRegistry
from .claims import ClaimAccounting
from .config import Config
from .discovery import AbiDiscovery
from .errors import NoContractAtAddress
from .models import claimed_percent
from .rpc_client import CallResult

# Zero-input getters that report how much has been claimed, most specific first.
CLAIM_FN_PATTERNS = (
    "totalclaimed",
    "claimed",
    "totaldistributed",
    "distributed",
    "totalreleased",
    "released",
    "totalvested",
)


class ContractService:
    """Combine configuration, client registry and engines to serve contract inspection requests."""

    def __init__(self, config: Config, registry: Optional[ClientRegistry] = None) -> None:
        self.config = config
        self.registry = registry or ClientRegistry(config)
        self.discovery = AbiDiscovery(self.registry, max_workers=config.probe_workers)
        self.accounting = ClaimAccounting(self.registry, self.discovery)

    def list_chains(self) -> Dict[str, Any]:
        return {"default_chain_id": self.config.default_chain_id, "chains": self.registry.list_chains()}

    def discover_abi(self, address: str, chain_id: Optional[Union[int, str]] = None) -> Dict[str, Any]:
        normalized_address = normalize_address(address)
        result = self.discovery.discover(normalized_address, self._chain_id(chain_id))
        return result.to_dict()

    def read_function(
        self,
        address: str,
        function: Union[AbiFunction, Dict[str, Any]],
        args: Optional[Sequence[Any]] = None,
        chain_id: Optional[Union[int, str]] = None,
    ) -> Dict[str, Any]:
        """Call one read-only function; a revert is reported to the caller."""
        normalized_address = normalize_address(address)
        fn = function if isinstance(function, AbiFunction) else AbiFunction.from_dict(function)
        if not fn.name:
            raise ValueError("function must have a name.")
        chain = self.registry.chain(self._chain_id(chain_id))
        client = self.registry.get_client(chain.chain_id)

        if not client.has_code(normalized_address):
            raise NoContractAtAddress(normalized_address, chain.name)

        value = client.read_contract(normalized_address, fn, coerce_args(fn, args))
        return {
            "address": normalized_address,
            "chain_id": chain.chain_id,
            "function": fn.name,
            "signature": fn.signature,
            "result": serialize_value(value),
        }

    def claim_stats(self, address: str, chain_id: Optional[Union[int, str]] = None) -> Dict[str, Any]:
        normalized_address = normalize_address(address)
        chain = self.registry.chain(self._chain_id(chain_id))
        stats = self.accounting.compute(normalized_address, chain.chain_id)
        return {"address": normalized_address, "chain_id": chain.chain_id, **stats.to_dict()}

    def inspect_contract(self, address: str, chain_id: Optional[Union[int, str]] = None) -> Dict[str, Any]:
        """
        Discover the ABI, read every zero-input function concurrently and derive
        token info (name/symbol/decimals/supply and a claimed figure if one is exposed).
        """
        normalized_address = normalize_address(address)
        discovered = self.discovery.discover(normalized_address, self._chain_id(chain_id))
        client = self.registry.get_client(discovered.chain_id)

        zero_input = [fn for fn in discovered.functions if not fn.has_inputs]
        with ThreadPoolExecutor(max_workers=self.config.probe_workers) as pool:
            results: List[CallResult] = list(
                pool.map(lambda fn: client.try_read_contract(normalized_address, fn), zero_input)
            )

        values: Dict[str, Any] = {r.function: r.value for r in results if r.ok}
        reads = {
            r.function: {"value": serialize_value(r.value)} if r.ok else {"value": None, "error": r.error}
            for r in results
        }

        return {
            **discovered.to_dict(),
            "reads": reads,
            "token_info": self._token_info(values),
        }

    def _token_info(self, values: Dict[str, Any]) -> Dict[str, Any]:
        name = values.get("name")
        symbol = values.get("symbol")
        decimals = values.get("decimals")
        supply = values.get("totalSupply")

        total_claimed: Optional[int] = None
        lowered = {key.lower(): value for key, value in values.items()}
        for pattern in CLAIM_FN_PATTERNS:
            candidate = lowered.get(pattern)
            if isinstance(candidate, int) and not isinstance(candidate, bool):
                total_claimed = candidate
                break

        total_supply = supply if isinstance(supply, int) and not isinstance(supply, bool) else None
        percent = None
        if total_supply and total_claimed is not None:
            percent = claimed_percent(total_claimed, total_supply)

        return {
            "name": name if isinstance(name, str) else None,
            "symbol": symbol if isinstance(symbol, str) else None,
            "decimals": int(decimals) if isinstance(decimals, int) else None,
            "total_supply": str(total_supply) if total_supply is not None else None,
            "total_claimed": str(total_claimed) if total_claimed is not None else None,
            "claimed_percent": percent,
        }

    def _chain_id(self, chain_id: Optional[Union[int, str]]) -> Union[int, str]:
        if chain_id is None or chain_id == "":
            return self.config.default_chain_id
        return chain_id
