import logging
from dataclasses import dataclass
from decimal import Decimal

from .reward_schedule import NetworkRewardSchedule, get_reward, to_smallest_unit

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnlockResult:
    network: str  # Name of the network schedule used
    height: int  # Height of the matured block
    reward: Decimal  # Block reward in whole coins
    reward_smallest_unit: int  # Same reward in the smallest currency unit
    has_uncles: bool  # Copied from the schedule, uncle rewards are computed elsewhere


def evaluate_block(schedule: NetworkRewardSchedule, height: int) -> UnlockResult:
    """
    Computes what a matured block at ``height`` is worth under ``schedule``. Confirmation depth and uncle data come
    from the node integration, this only supplies the scheduled reward.
    """
    reward = get_reward(schedule, height)
    log.info(f"Network: {schedule.name} Block Height: {height} Block Reward: {reward:.2f}")
    if not schedule.has_uncles:
        log.info(f"Network {schedule.name} does not include uncle blocks")
    return UnlockResult(schedule.name, height, reward, to_smallest_unit(reward), schedule.has_uncles)
