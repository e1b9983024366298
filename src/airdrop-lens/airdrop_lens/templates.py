"""ABI templates for common contract patterns, used to probe unverified contracts."""

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .abi import AbiFunction, AbiParam


def _view(name: str, output: str, inputs: Sequence[Tuple[str, str]] = ()) -> AbiFunction:
    return AbiFunction(
        name=name,
        inputs=tuple(AbiParam(n, t) for n, t in inputs),
        outputs=(AbiParam("", output),),
        state_mutability="view",
    )


@dataclass(frozen=True)
class AbiTemplate:
    name: str
    functions: Tuple[AbiFunction, ...]

    @property
    def zero_input(self) -> List[AbiFunction]:
        return [fn for fn in self.functions if not fn.has_inputs]

    @property
    def with_inputs(self) -> List[AbiFunction]:
        return [fn for fn in self.functions if fn.has_inputs]

    def has_function(self, name: str) -> bool:
        return any(fn.name == name for fn in self.functions)


ERC20_TEMPLATE = AbiTemplate(
    "ERC20",
    (
        _view("name", "string"),
        _view("symbol", "string"),
        _view("decimals", "uint8"),
        _view("totalSupply", "uint256"),
        _view("balanceOf", "uint256", [("account", "address")]),
        _view("allowance", "uint256", [("owner", "address"), ("spender", "address")]),
    ),
)

MERKLE_DISTRIBUTOR_TEMPLATE = AbiTemplate(
    "Merkle Distributor",
    (
        _view("token", "address"),
        _view("rewardToken", "address"),
        _view("claimToken", "address"),
        _view("distributionToken", "address"),
        _view("merkleRoot", "bytes32"),
        _view("isClaimed", "bool", [("index", "uint256")]),
    ),
)

AIRDROP_VESTING_TEMPLATE = AbiTemplate(
    "Airdrop / Vesting",
    (
        _view("totalClaimed", "uint256"),
        _view("totalDistributed", "uint256"),
        _view("totalReleased", "uint256"),
        _view("totalVested", "uint256"),
        _view("claimed", "uint256", [("account", "address")]),
        _view("token", "address"),
        _view("rewardToken", "address"),
        _view("claimToken", "address"),
        _view("distributionToken", "address"),
        _view("owner", "address"),
        _view("paused", "bool"),
    ),
)

OWNABLE_TEMPLATE = AbiTemplate(
    "Ownable / Access",
    (
        _view("owner", "address"),
        _view("pendingOwner", "address"),
    ),
)

FALLBACK_TEMPLATES: Tuple[AbiTemplate, ...] = (
    ERC20_TEMPLATE,
    MERKLE_DISTRIBUTOR_TEMPLATE,
    AIRDROP_VESTING_TEMPLATE,
    OWNABLE_TEMPLATE,
)

# ERC20 reads used by claim accounting against the resolved reward token.
ERC20_BALANCE_OF = ERC20_TEMPLATE.functions[4]
ERC20_DECIMALS = ERC20_TEMPLATE.functions[2]
ERC20_SYMBOL = ERC20_TEMPLATE.functions[1]
ERC20_NAME = ERC20_TEMPLATE.functions[0]


def unique_template_functions(templates: Sequence[AbiTemplate] = FALLBACK_TEMPLATES) -> Dict[str, AbiFunction]:
    """Union of all template functions keyed by name; the first template to define a name wins."""
    merged: Dict[str, AbiFunction] = {}
    for template in templates:
        for fn in template.functions:
            merged.setdefault(fn.name, fn)
    return merged
