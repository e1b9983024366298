from dataclasses import dataclass
from typing import Any, Dict, Optional


def claimed_percent(claimed: int, total: int) -> Optional[float]:
    """Percentage with two decimals via basis points, truncated; None when total is zero."""
    if total <= 0:
        return None
    return (claimed * 10000 // total) / 100


@dataclass(frozen=True)
class ClaimStats:
    total_claimed: int
    remaining_balance: int
    claim_count: int
    decimals: int = 18
    token_address: Optional[str] = None
    token_symbol: Optional[str] = None
    token_name: Optional[str] = None
    event_signature: Optional[str] = None

    @property
    def total_allocation(self) -> int:
        return self.total_claimed + self.remaining_balance

    @property
    def claimed_percent(self) -> Optional[float]:
        return claimed_percent(self.total_claimed, self.total_allocation)

    def to_dict(self) -> Dict[str, Any]:
        # Token amounts exceed float precision, so they travel as decimal strings.
        return {
            "total_claimed": str(self.total_claimed),
            "remaining": str(self.remaining_balance),
            "total_allocation": str(self.total_allocation),
            "claimed_percent": self.claimed_percent,
            "claim_count": self.claim_count,
            "decimals": self.decimals,
            "token_address": self.token_address,
            "token_symbol": self.token_symbol,
            "token_name": self.token_name,
            "event_signature": self.event_signature,
        }
