from __future__ import annotations

import enum
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from .abi import AbiFunction, parse_abi, storage_word_to_address, view_functions
from .chains import ClientRegistry
from .errors import AbiNotFound, NoContractAtAddress, RpcError
from .explorer_client import ExplorerClient
from .rpc_client import CallResult, RpcClient
from .templates import FALLBACK_TEMPLATES, AbiTemplate, unique_template_functions

logger = logging.getLogger(__name__)

EIP1967_IMPLEMENTATION_SLOT = "0x360894a13ba1a3210667c828492db98dca3e2076cc3735a920a3ca505d382bbc"


class DiscoverySource(enum.Enum):
    VERIFIED = "verified"
    PROXY_IMPLEMENTATION = "proxy_implementation"
    PROBED = "probed"


@dataclass(frozen=True)
class DiscoveryResult:
    address: str
    chain_id: int
    functions: List[AbiFunction]
    source: DiscoverySource
    implementation: Optional[str] = None
    matched_templates: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "chain_id": self.chain_id,
            "source": self.source.value,
            "implementation": self.implementation,
            "matched_templates": list(self.matched_templates),
            "functions": [fn.to_dict() for fn in self.functions],
        }


class AbiDiscovery:
    """
    Best-effort read-only interface for a contract, tried in order:
      1. deployed code check (fatal when missing)
      2. verified ABI from the chain's explorer(s)
      3. verified ABI of the EIP-1967 implementation
      4. probing archetype templates against the live contract
    """

    def __init__(
        self,
        registry: ClientRegistry,
        max_workers: int = 8,
        templates: Sequence[AbiTemplate] = FALLBACK_TEMPLATES,
    ) -> None:
        self.registry = registry
        self.max_workers = max(1, max_workers)
        self.templates = tuple(templates)

    def discover(self, address: str, chain_id: Any) -> DiscoveryResult:
        chain = self.registry.chain(chain_id)
        client = self.registry.get_client(chain.chain_id)

        if not client.has_code(address):
            raise NoContractAtAddress(address, chain.name)

        explorers = self.registry.abi_explorers(chain.chain_id)
        functions = self._verified_functions(explorers, address)
        if functions:
            return DiscoveryResult(address, chain.chain_id, functions, DiscoverySource.VERIFIED)

        implementation = self.proxy_implementation(client, address)
        if implementation:
            functions = self._verified_functions(explorers, implementation)
            if functions:
                logger.info("Using implementation %s ABI for proxy %s", implementation, address)
                return DiscoveryResult(
                    address,
                    chain.chain_id,
                    functions,
                    DiscoverySource.PROXY_IMPLEMENTATION,
                    implementation=implementation,
                )

        functions, matched = self.probe_templates(client, address)
        if functions:
            return DiscoveryResult(
                address,
                chain.chain_id,
                functions,
                DiscoverySource.PROBED,
                implementation=implementation,
                matched_templates=tuple(matched),
            )

        if self.registry.credentials_missing(chain.chain_id):
            raise AbiNotFound(
                f"ABI not found for {address} on {chain.name}.",
                hint="ETHERSCAN_API_KEY is not set. Get a free key at etherscan.io/apis and export it before retrying.",
            )
        raise AbiNotFound(
            f"ABI not found: the contract exists on {chain.name} but is not verified. "
            "Fallback probing found no known functions."
        )

    def _verified_functions(self, explorers: Sequence[ExplorerClient], address: str) -> List[AbiFunction]:
        for explorer in explorers:
            try:
                response = explorer.get_abi(address)
            except (requests.RequestException, ValueError) as exc:
                logger.debug("ABI lookup for %s via %s failed: %s", address, explorer.label, exc)
                continue

            if not response.ok or not response.result:
                logger.debug("No verified ABI for %s via %s: %s", address, explorer.label, response.message)
                continue

            try:
                functions = view_functions(parse_abi(response.result))
            except ValueError as exc:
                logger.debug("Unparseable ABI for %s via %s: %s", address, explorer.label, exc)
                continue

            # A verified ABI without view/pure functions is usually a proxy stub.
            if functions:
                return functions
            logger.debug("Verified ABI for %s has no view functions; treating as proxy stub", address)
        return []

    def proxy_implementation(self, client: RpcClient, address: str) -> Optional[str]:
        """Implementation address from the EIP-1967 slot, if it holds deployed code."""
        try:
            word = client.get_storage_at(address, EIP1967_IMPLEMENTATION_SLOT)
            implementation = storage_word_to_address(word)
            if not implementation:
                return None
            if not client.has_code(implementation):
                logger.debug("EIP-1967 slot of %s points at %s, which has no code", address, implementation)
                return None
            return implementation
        except (RpcError, requests.RequestException, ValueError) as exc:
            logger.debug("Proxy slot read for %s failed: %s", address, exc)
            return None

    def probe_templates(self, client: RpcClient, address: str) -> Tuple[List[AbiFunction], List[str]]:
        """
        Call every zero-input template function concurrently and keep those that answer.
        A template matches when at least one of its zero-input functions answered; its
        input-taking functions are then listed without being probed.
        """
        candidates = [fn for fn in unique_template_functions(self.templates).values() if not fn.has_inputs]
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            results: List[CallResult] = list(pool.map(lambda fn: client.try_read_contract(address, fn), candidates))

        working = [fn for fn, result in zip(candidates, results) if result.ok]
        working_names = {fn.name for fn in working}

        matched = [t.name for t in self.templates if any(t.has_function(name) for name in working_names)]
        for template in self.templates:
            if template.name not in matched:
                continue
            for fn in template.with_inputs:
                if fn.name not in working_names:
                    working.append(fn)
                    working_names.add(fn.name)

        logger.debug(
            "Probed %s functions on %s: %s answered, templates matched %s",
            len(candidates),
            address,
            len(results) - sum(1 for r in results if not r.ok),
            matched,
        )
        return working, matched
