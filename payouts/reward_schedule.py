from bisect import bisect_right
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Tuple

from .errors import InvalidArgument

ZETHER_MAINNET = "ZetherMainnet"
ZETHER_TESTNET = "ZetherTestnet"

# Number of smallest units in one coin
SMALLEST_UNIT_DECIMALS = 18


@dataclass(frozen=True)
class Breakpoint:
    min_height: int  # First block height at which this reward applies
    reward: Decimal  # Block reward in whole coins


@dataclass(frozen=True)
class NetworkRewardSchedule:
    name: str  # Network identifier, for example ZetherMainnet
    breakpoints: Tuple[Breakpoint, ...]  # Sorted ascending by min_height, heights are unique
    adjustment_freq: int = 0  # Blocks between reward adjustments, informational
    has_uncles: bool = False  # Informational only, never applied to the reward value
    _heights: Tuple[int, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        heights = tuple(bp.min_height for bp in self.breakpoints)
        for previous, current in zip(heights, heights[1:]):
            if current <= previous:
                raise InvalidArgument(
                    "NetworkRewardSchedule", self.name, f"breakpoint heights must strictly increase ({previous}, {current})"
                )
        object.__setattr__(self, "_heights", heights)

    @classmethod
    def from_mapping(
        cls, name: str, block_reward: Mapping[Any, Any], adjustment_freq: int = 0, has_uncles: bool = False
    ) -> "NetworkRewardSchedule":
        """
        Builds a schedule from an unordered ``{height: reward}`` mapping, as found in config files. The mapping is
        validated and explicitly sorted, so iteration order of the source never matters.
        """
        breakpoints = []
        for raw_height, raw_reward in block_reward.items():
            if isinstance(raw_height, bool) or not isinstance(raw_height, (int, str)):
                raise InvalidArgument("NetworkRewardSchedule", name, f"breakpoint height {raw_height!r} is not an integer")
            try:
                height = int(raw_height)
                reward = Decimal(str(raw_reward))
            except (TypeError, ValueError, InvalidOperation):
                raise InvalidArgument("NetworkRewardSchedule", name, f"bad breakpoint {raw_height!r}: {raw_reward!r}")
            if height < 0 or not reward.is_finite() or reward < 0:
                raise InvalidArgument("NetworkRewardSchedule", name, f"bad breakpoint {raw_height!r}: {raw_reward!r}")
            breakpoints.append(Breakpoint(height, reward))
        breakpoints.sort(key=lambda bp: bp.min_height)
        return cls(name, tuple(breakpoints), int(adjustment_freq), bool(has_uncles))


def get_reward(schedule: NetworkRewardSchedule, height: int) -> Decimal:
    """
    Returns the block reward at ``height``: the reward of the breakpoint with the largest min_height that is still
    <= height, or zero when the height is below the first breakpoint.
    """
    if isinstance(height, bool) or not isinstance(height, int):
        raise InvalidArgument("get_reward", str(height), "height must be an integer")
    if height < 0:
        raise InvalidArgument("get_reward", str(height), "height must not be negative")

    index = bisect_right(schedule._heights, height)
    if index == 0:
        return Decimal(0)
    return schedule.breakpoints[index - 1].reward


def to_smallest_unit(amount: Decimal, decimals: int = SMALLEST_UNIT_DECIMALS) -> int:
    return int(amount.scaleb(decimals))


ZETHER_NETWORK = NetworkRewardSchedule.from_mapping(
    ZETHER_MAINNET,
    {0: "50", 100000: "25", 200000: "12.5", 300000: "6.25"},
    adjustment_freq=100000,
    has_uncles=False,
)

ZETHER_TESTNET_NETWORK = NetworkRewardSchedule.from_mapping(
    ZETHER_TESTNET,
    {0: "50", 1000: "25", 2000: "12.5", 3000: "6.25"},
    adjustment_freq=1000,
    has_uncles=False,
)

DEFAULT_NETWORKS: Dict[str, NetworkRewardSchedule] = {
    ZETHER_MAINNET: ZETHER_NETWORK,
    ZETHER_TESTNET: ZETHER_TESTNET_NETWORK,
}


def load_networks(pool_config: Dict) -> Dict[str, NetworkRewardSchedule]:
    """
    Reads the ``networks`` section of the pool config. Networks defined there replace the built-in ones of the same
    name, the rest of the built-in schedules stay available.
    """
    networks: Dict[str, NetworkRewardSchedule] = dict(DEFAULT_NETWORKS)
    for name, network_config in (pool_config.get("networks") or {}).items():
        networks[name] = NetworkRewardSchedule.from_mapping(
            name,
            network_config["block_reward"],
            adjustment_freq=network_config.get("adjustment_freq", 0),
            has_uncles=network_config.get("has_uncles", False),
        )
    return networks
