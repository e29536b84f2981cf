import json
import logging
from typing import Any, Mapping, Set, Union

from .errors import InvalidArgument
from .record import MinerChartPoint, PoolChartPoint
from .store.abstract import AbstractPayoutStore

BLACKLIST_KEY = "blacklist"
WHITELIST_KEY = "whitelist"

ChartRecord = Union[PoolChartPoint, MinerChartPoint, Mapping[str, Any], list]


def encode_chart(operation: str, key: str, record: ChartRecord) -> str:
    if hasattr(record, "to_json_dict"):
        record = record.to_json_dict()
    elif isinstance(record, list):
        record = [item.to_json_dict() if hasattr(item, "to_json_dict") else item for item in record]
    try:
        return json.dumps(record)
    except (TypeError, ValueError) as e:
        raise InvalidArgument(operation, key, f"record is not serializable: {e}") from e


class ChartStore:
    """
    Latest-wins chart snapshots and the address access lists.

    A chart write replaces the previous snapshot at that key entirely, keeping history would need one key per
    timestamp.
    """

    def __init__(self, store: AbstractPayoutStore):
        self.log = logging.getLogger(__name__)
        self.store = store

    async def write_miner_chart(self, key: str, record: ChartRecord):
        await self.store.set_value(key, encode_chart("write_miner_chart", key, record))

    async def write_pool_chart(self, key: str, record: ChartRecord):
        await self.store.set_value(key, encode_chart("write_pool_chart", key, record))

    async def get_blacklist(self) -> Set[str]:
        return await self.store.get_set_members(BLACKLIST_KEY)

    async def get_whitelist(self) -> Set[str]:
        return await self.store.get_set_members(WHITELIST_KEY)

    async def delete_key(self, key: str):
        # Retention deletes: one key per call, absent keys are fine
        if await self.store.delete_key(key):
            self.log.debug(f"Deleted {key}")
