import pytest

from airdrop_lens.models import ClaimStats, claimed_percent


@pytest.mark.parametrize(
    "claimed, remaining",
    [
        (0, 0),
        (0, 1),
        (1, 0),
        (1, 2),
        (2, 1),
        (123456789, 987654321),
        (2**256 - 1, 2**256 - 1),
        (10**40, 3),
        (1, 10**40),
    ],
)
def test_allocation_and_percent_invariants(claimed, remaining):
    stats = ClaimStats(total_claimed=claimed, remaining_balance=remaining, claim_count=1)

    assert stats.total_allocation == claimed + remaining
    if stats.total_allocation == 0:
        assert stats.claimed_percent is None
    else:
        assert 0 <= stats.claimed_percent <= 100
        assert stats.claimed_percent == (claimed * 10000 // stats.total_allocation) / 100


def test_percent_truncates_toward_zero():
    assert claimed_percent(1, 3) == 33.33
    assert claimed_percent(2, 3) == 66.66
    assert claimed_percent(0, 5) == 0.0
    assert claimed_percent(5, 0) is None


def test_to_dict_renders_amounts_as_strings():
    stats = ClaimStats(
        total_claimed=2**255,
        remaining_balance=2**255,
        claim_count=2,
        decimals=6,
        token_address="0x" + "33" * 20,
        event_signature="Claimed(address,uint256)",
    )

    data = stats.to_dict()

    assert data["total_claimed"] == str(2**255)
    assert data["remaining"] == str(2**255)
    assert data["total_allocation"] == str(2**256)
    assert data["claimed_percent"] == 50.0
    assert data["decimals"] == 6
    assert data["token_symbol"] is None
