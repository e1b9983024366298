from unittest.mock import MagicMock, call

import requests

from conftest import DISTRIBUTOR, log_entry, not_found, ok, rate_limited

from airdrop_lens.chains import ClientRegistry
from airdrop_lens.config import Config
from airdrop_lens.errors import RpcError
from airdrop_lens.log_fetcher import ExplorerLogFetcher, RpcLogFetcher, select_log_fetcher

TOPIC = "0x" + "ab" * 32
OTHER_TOPIC = "0x" + "cd" * 32


def _page(start_block: int, count: int) -> list:
    return [log_entry(TOPIC, start_block + i, data="0x") for i in range(count)]


def _fetcher(explorer, **kwargs) -> ExplorerLogFetcher:
    sleep = kwargs.pop("sleep", MagicMock())
    return ExplorerLogFetcher(explorer, sleep=sleep, **kwargs)


def test_paginates_until_short_page():
    explorer = MagicMock()
    explorer.get_logs.side_effect = [ok(_page(10, 1000)), ok(_page(1010, 1000)), ok(_page(2010, 400))]
    sleep = MagicMock()

    records = _fetcher(explorer, sleep=sleep).fetch(DISTRIBUTOR, TOPIC)

    assert len(records) == 2400
    assert explorer.get_logs.call_count == 3
    assert explorer.get_logs.call_args_list == [
        call(DISTRIBUTOR, TOPIC, 0),
        call(DISTRIBUTOR, TOPIC, 1010),
        call(DISTRIBUTOR, TOPIC, 2010),
    ]
    # Paced between successful full pages only.
    assert sleep.call_args_list == [call(0.35), call(0.35)]


def test_rate_limited_page_is_retried_in_place():
    explorer = MagicMock()
    explorer.get_logs.side_effect = [
        ok(_page(0, 1000)),
        rate_limited(),
        rate_limited(),
        ok(_page(1000, 5)),
    ]
    sleep = MagicMock()

    records = _fetcher(explorer, sleep=sleep).fetch(DISTRIBUTOR, TOPIC)

    assert len(records) == 1005
    assert explorer.get_logs.call_args_list[1:] == [call(DISTRIBUTOR, TOPIC, 1000)] * 3
    assert sleep.call_args_list == [call(0.35), call(1.5), call(1.5)]


def test_persistent_rate_limit_returns_previous_pages():
    explorer = MagicMock()
    explorer.get_logs.side_effect = [ok(_page(0, 1000))] + [rate_limited()] * 10

    records = _fetcher(explorer).fetch(DISTRIBUTOR, TOPIC)

    assert len(records) == 1000
    # One successful page, then the original attempt plus three retries.
    assert explorer.get_logs.call_count == 1 + 4


def test_rate_limited_from_the_start_returns_none():
    explorer = MagicMock()
    explorer.get_logs.return_value = rate_limited()

    assert _fetcher(explorer).fetch(DISTRIBUTOR, TOPIC) is None
    assert explorer.get_logs.call_count == 4


def test_no_records_is_none_not_empty_list():
    explorer = MagicMock()
    explorer.get_logs.return_value = not_found()

    assert _fetcher(explorer).fetch(DISTRIBUTOR, TOPIC) is None
    explorer.get_logs.assert_called_once()


def test_page_cap_bounds_the_scan():
    explorer = MagicMock()
    explorer.get_logs.side_effect = lambda address, topic, from_block: ok(_page(from_block, 10))

    records = _fetcher(explorer, page_size=10, max_pages=4).fetch(DISTRIBUTOR, TOPIC)

    assert len(records) == 40
    assert explorer.get_logs.call_count == 4


def test_transport_failure_keeps_gathered_logs():
    explorer = MagicMock()
    explorer.get_logs.side_effect = [ok(_page(0, 1000)), requests.ConnectionError("boom")]

    records = _fetcher(explorer).fetch(DISTRIBUTOR, TOPIC)

    assert len(records) == 1000


def test_malformed_last_entry_does_not_refetch_parsed_logs():
    first = _page(0, 1000)
    first[-1]["blockNumber"] = None
    explorer = MagicMock()
    explorer.get_logs.side_effect = [ok(first), ok(_page(999, 3))]

    records = _fetcher(explorer).fetch(DISTRIBUTOR, TOPIC)

    assert explorer.get_logs.call_args_list[1] == call(DISTRIBUTOR, TOPIC, 999)
    blocks = [r.block_number for r in records]
    assert len(blocks) == len(set(blocks)) == 1002


def test_rpc_fetcher_filters_by_topic():
    client = MagicMock()
    client.get_logs_via_filter.return_value = [
        log_entry(TOPIC, 5, data="0x01"),
        log_entry(OTHER_TOPIC, 6, data="0x02"),
        log_entry(TOPIC.upper().replace("0X", "0x"), 7, data="0x03"),
    ]

    records = RpcLogFetcher(client).fetch(DISTRIBUTOR, TOPIC)

    assert [r.block_number for r in records] == [5, 7]
    client.get_logs_via_filter.assert_called_once_with(DISTRIBUTOR, from_block=0)


def test_rpc_fetcher_returns_none_on_failure_or_no_match():
    client = MagicMock()
    client.get_logs_via_filter.side_effect = RpcError("RPC error: code -32005: query returned more than 10000 results.")
    assert RpcLogFetcher(client).fetch(DISTRIBUTOR, TOPIC) is None

    client.get_logs_via_filter.side_effect = None
    client.get_logs_via_filter.return_value = [log_entry(OTHER_TOPIC, 1, data="0x")]
    assert RpcLogFetcher(client).fetch(DISTRIBUTOR, TOPIC) is None


def test_select_log_fetcher_follows_chain_strategy():
    keyed = ClientRegistry(Config(etherscan_api_key="k", log_page_size=250))
    fetcher = select_log_fetcher(keyed, 1)
    assert isinstance(fetcher, ExplorerLogFetcher)
    assert fetcher.page_size == 250
    assert fetcher.explorer.chain_id == 1

    assert isinstance(select_log_fetcher(keyed, 1329), RpcLogFetcher)
    assert isinstance(select_log_fetcher(ClientRegistry(Config()), 1), RpcLogFetcher)
