import argparse
import json
import logging
import sys
from typing import Optional

from .config import load_config
from .errors import short_message
from .service import ContractService


def _add_target_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--address",
        required=True,
        help="Contract address (0x-prefixed).",
    )
    parser.add_argument(
        "--chain",
        required=False,
        help="Chain id (e.g. 1, 8453, 1329). Defaults to DEFAULT_CHAIN_ID env or 1329 (Sei).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Discover read-only interfaces and airdrop claim progress of EVM contracts.",
        allow_abbrev=False,
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("chains", help="List supported chains")

    abi_parser = subparsers.add_parser("abi", help="Discover callable read-only functions")
    _add_target_args(abi_parser)

    read_parser = subparsers.add_parser("read", help="Call a single read-only function")
    _add_target_args(read_parser)
    read_parser.add_argument(
        "--function",
        required=True,
        help="Function ABI entry as JSON, or a function name from the discovered ABI.",
    )
    read_parser.add_argument(
        "--arg",
        dest="args",
        action="append",
        default=[],
        help="Function argument (repeatable, in order).",
    )

    stats_parser = subparsers.add_parser("claim-stats", help="Compute claimed vs. allocated totals")
    _add_target_args(stats_parser)

    inspect_parser = subparsers.add_parser("inspect", help="Discover ABI and auto-read zero-input functions")
    _add_target_args(inspect_parser)

    return parser


def _resolve_function(service: ContractService, raw: str, address: str, chain: Optional[str]) -> dict:
    candidate = raw.strip()
    if candidate.startswith("{"):
        try:
            return json.loads(candidate)
        except json.JSONDecodeError as exc:
            raise ValueError("--function is not valid JSON.") from exc

    discovered = service.discover_abi(address, chain)
    for entry in discovered["functions"]:
        if entry["name"] == candidate:
            return entry
    raise ValueError(f"Function '{candidate}' not found in the discovered ABI.")


def _configure_logging(level_name: str, verbose: int) -> None:
    level = getattr(logging, level_name, logging.WARNING)
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = min(level, logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s", stream=sys.stderr)


def main(argv: Optional[list[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config()
        _configure_logging(config.log_level, args.verbose)
        service = ContractService(config)

        if args.command == "chains":
            result = service.list_chains()
        elif args.command == "abi":
            result = service.discover_abi(args.address, args.chain)
        elif args.command == "read":
            function = _resolve_function(service, args.function, args.address, args.chain)
            result = service.read_function(args.address, function, args.args, args.chain)
        elif args.command == "claim-stats":
            result = service.claim_stats(args.address, args.chain)
        else:
            result = service.inspect_contract(args.address, args.chain)
        print(json.dumps(result, indent=2))
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Error: {short_message(exc)}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
