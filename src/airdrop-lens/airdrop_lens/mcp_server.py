"""
MCP server exposing contract interface discovery and airdrop claim accounting.
"""

import argparse
import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Union

import requests
from mcp.server.fastmcp import FastMCP

from .config import load_config
from .errors import LensError, short_message
from .service import ContractService

server = FastMCP(
    name="airdrop-lens",
    instructions=(
        "Inspect EVM contracts that may be unverified: discover a read-only ABI, "
        "call view functions, and compute airdrop claim progress from Claimed events."
    ),
)

_service: Optional[ContractService] = None

ChainParam = Optional[Union[int, str]]


def _get_service() -> ContractService:
    global _service
    if _service is None:
        cfg = load_config()
        logging.basicConfig(level=getattr(logging, cfg.log_level, logging.WARNING))
        _service = ContractService(cfg)
    return _service


@contextmanager
def _user_errors() -> Iterator[None]:
    # MCP clients render the message verbatim; keep it to one line.
    try:
        yield
    except (LensError, requests.RequestException, ValueError) as exc:
        raise ValueError(short_message(exc)) from exc


@server.tool(
    name="list_chains",
    title="List Supported Chains",
    description="List supported chain ids with their explorer and log-scan strategy.",
)
def list_chains() -> dict:
    with _user_errors():
        return _get_service().list_chains()


@server.tool(
    name="discover_abi",
    title="Discover Read-Only ABI",
    description=(
        "Return callable view/pure functions for a contract: verified ABI, then EIP-1967 "
        "implementation ABI, then probing known contract templates. chain defaults to Sei (1329)."
    ),
)
def discover_abi(address: str, chain: ChainParam = None) -> dict:
    svc = _get_service()
    with _user_errors():
        return svc.discover_abi(address, chain)


@server.tool(
    name="read_function",
    title="Read Contract Function",
    description="Call one view/pure function. function is an ABI entry object (as returned by discover_abi); args are positional.",
)
def read_function(address: str, function: dict, args: Optional[list] = None, chain: ChainParam = None) -> dict:
    svc = _get_service()
    with _user_errors():
        return svc.read_function(address, function, args or [], chain)


@server.tool(
    name="claim_stats",
    title="Airdrop Claim Stats",
    description="Scan Claimed events to compute total claimed, remaining balance, total allocation and claimed percent. Amounts are decimal strings.",
)
def claim_stats(address: str, chain: ChainParam = None) -> dict:
    svc = _get_service()
    with _user_errors():
        return svc.claim_stats(address, chain)


@server.tool(
    name="inspect_contract",
    title="Inspect Contract",
    description="Discover the ABI, auto-read every zero-input function, and summarize token info (name, symbol, decimals, supply, claimed).",
)
def inspect_contract(address: str, chain: ChainParam = None) -> dict:
    svc = _get_service()
    with _user_errors():
        return svc.inspect_contract(address, chain)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the airdrop-lens MCP server.")
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "streamable-http"],
        default="stdio",
        help="Transport protocol for MCP.",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host for SSE/HTTP transports.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for SSE/HTTP transports.",
    )
    parser.add_argument(
        "--mount-path",
        default="/",
        help="Mount path for SSE transport (only when transport=sse).",
    )
    args = parser.parse_args()

    # FastMCP uses host/port only for SSE/HTTP transports; stdio ignores them.
    server.settings.host = args.host
    server.settings.port = args.port

    if args.transport == "sse":
        server.run(transport="sse", mount_path=args.mount_path)
    else:
        server.run(transport=args.transport)


if __name__ == "__main__":
    main()
