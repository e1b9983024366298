import json
from unittest.mock import patch

import pytest

from conftest import DISTRIBUTOR

from airdrop_lens import cli
from airdrop_lens.config import Config
from airdrop_lens.errors import NoClaimEventsFound


@pytest.fixture
def service():
    with patch.object(cli, "load_config", return_value=Config()), patch.object(cli, "ContractService") as factory:
        yield factory.return_value


def test_chains_prints_json(service, capsys):
    service.list_chains.return_value = {"default_chain_id": 1329, "chains": []}

    cli.main(["chains"])

    assert json.loads(capsys.readouterr().out) == {"default_chain_id": 1329, "chains": []}


def test_claim_stats_passes_chain(service, capsys):
    service.claim_stats.return_value = {"total_claimed": "1"}

    cli.main(["claim-stats", "--address", DISTRIBUTOR, "--chain", "8453"])

    service.claim_stats.assert_called_once_with(DISTRIBUTOR, "8453")
    assert json.loads(capsys.readouterr().out) == {"total_claimed": "1"}


def test_read_resolves_function_name_from_discovered_abi(service, capsys):
    entry = {"type": "function", "name": "isClaimed", "inputs": [{"name": "index", "type": "uint256"}], "outputs": [{"name": "", "type": "bool"}]}
    service.discover_abi.return_value = {"functions": [entry]}
    service.read_function.return_value = {"result": True}

    cli.main(["read", "--address", DISTRIBUTOR, "--function", "isClaimed", "--arg", "7"])

    service.read_function.assert_called_once_with(DISTRIBUTOR, entry, ["7"], None)


def test_read_accepts_inline_abi_entry(service, capsys):
    service.read_function.return_value = {"result": "1"}

    cli.main(["read", "--address", DISTRIBUTOR, "--function", '{"name": "owner", "outputs": [{"type": "address"}]}'])

    service.discover_abi.assert_not_called()
    assert service.read_function.call_args.args[1]["name"] == "owner"


def test_errors_print_one_line_and_exit_nonzero(service, capsys):
    service.claim_stats.side_effect = NoClaimEventsFound(DISTRIBUTOR)

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["claim-stats", "--address", DISTRIBUTOR])

    assert exc_info.value.code == 1
    assert capsys.readouterr().err == f"Error: No Claimed events found on contract {DISTRIBUTOR}\n"


def test_unknown_function_name_is_an_error(service, capsys):
    service.discover_abi.return_value = {"functions": []}

    with pytest.raises(SystemExit):
        cli.main(["read", "--address", DISTRIBUTOR, "--function", "missing"])

    assert "not found in the discovered ABI" in capsys.readouterr().err
