from unittest.mock import MagicMock, patch

import pytest
import requests

from conftest import DISTRIBUTOR

from airdrop_lens import mcp_server
from airdrop_lens.errors import NoClaimEventsFound


@pytest.fixture
def service():
    svc = MagicMock()
    with patch.object(mcp_server, "_service", svc):
        yield svc


def test_transport_errors_become_single_line_messages(service):
    service.discover_abi.side_effect = requests.ConnectionError(
        "HTTPSConnectionPool(host='rpc.example', port=443): Max retries exceeded with url: /v2/SECRETKEY\n"
        "(Caused by NewConnectionError('refused'))"
    )

    with pytest.raises(ValueError) as exc_info:
        mcp_server.discover_abi(DISTRIBUTOR, 1)

    message = str(exc_info.value)
    assert "\n" not in message
    assert "SECRETKEY" not in message
    assert message.startswith("HTTPSConnectionPool(host='rpc.example', port=443): Max retries exceeded")


def test_domain_errors_keep_their_message(service):
    service.claim_stats.side_effect = NoClaimEventsFound(DISTRIBUTOR)

    with pytest.raises(ValueError, match=f"^No Claimed events found on contract {DISTRIBUTOR}$"):
        mcp_server.claim_stats(DISTRIBUTOR, 1)


def test_invalid_input_is_normalized(service):
    service.read_function.side_effect = ValueError("balanceOf expects 1 argument(s), got 0.\nextra detail")

    with pytest.raises(ValueError, match=r"^balanceOf expects 1 argument\(s\), got 0\.$"):
        mcp_server.read_function(DISTRIBUTOR, {"name": "balanceOf"}, None, 1)

    service.read_function.assert_called_once_with(DISTRIBUTOR, {"name": "balanceOf"}, [], 1)


def test_results_pass_through(service):
    service.inspect_contract.return_value = {"reads": {}}
    service.list_chains.return_value = {"chains": []}

    assert mcp_server.inspect_contract(DISTRIBUTOR) == {"reads": {}}
    assert mcp_server.list_chains() == {"chains": []}
    service.inspect_contract.assert_called_once_with(DISTRIBUTOR, None)
