import logging
from typing import List, Optional, Set

import redis.asyncio as redis
from redis.exceptions import RedisError, ResponseError, WatchError

from .abstract import AbstractPayoutStore
from ..errors import DecodeFailure, StorageUnavailable


class RedisPayoutStore(AbstractPayoutStore):
    """
    Payout store based on Redis.
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        socket_timeout: Optional[float] = 5.0,
        connection: Optional[redis.Redis] = None,
    ):
        super().__init__()
        self.log = logging.getLogger(__name__)
        self.url = url
        self.socket_timeout = socket_timeout
        self.connection: Optional[redis.Redis] = connection

    async def connect(self):
        if self.connection is None:
            self.connection = redis.Redis.from_url(
                self.url, socket_timeout=self.socket_timeout, decode_responses=True
            )
        try:
            await self.connection.ping()
        except RedisError as e:
            raise StorageUnavailable("connect", self.url, str(e)) from e
        self.log.info(f"Connected to redis at {self.url}")

    async def close(self):
        if self.connection is not None:
            await self.connection.aclose()
            self.connection = None

    async def get_value(self, key: str) -> Optional[str]:
        try:
            return await self.connection.get(key)
        except UnicodeDecodeError as e:
            raise DecodeFailure("get", key, str(e)) from e
        except RedisError as e:
            raise StorageUnavailable("get", key, str(e)) from e

    async def set_value(self, key: str, value: str):
        try:
            await self.connection.set(key, value)
        except RedisError as e:
            raise StorageUnavailable("set", key, str(e)) from e

    async def set_value_if_absent(self, key: str, value: str) -> bool:
        try:
            return bool(await self.connection.set(key, value, nx=True))
        except RedisError as e:
            raise StorageUnavailable("setnx", key, str(e)) from e

    async def delete_key_if_value(self, key: str, expected: str) -> bool:
        try:
            async with self.connection.pipeline(transaction=True) as pipe:
                await pipe.watch(key)
                if await pipe.get(key) != expected:
                    return False
                pipe.multi()
                pipe.delete(key)
                await pipe.execute()
                return True
        except WatchError:
            # Written between the WATCH and the EXEC, so it no longer holds ``expected``
            return False
        except UnicodeDecodeError:
            return False
        except RedisError as e:
            raise StorageUnavailable("delete_if_value", key, str(e)) from e

    async def delete_key(self, key: str) -> bool:
        try:
            return await self.connection.delete(key) > 0
        except RedisError as e:
            raise StorageUnavailable("delete", key, str(e)) from e

    async def scan_keys(self, pattern: str) -> List[str]:
        try:
            return [key async for key in self.connection.scan_iter(match=pattern)]
        except UnicodeDecodeError as e:
            raise DecodeFailure("scan", pattern, str(e)) from e
        except RedisError as e:
            raise StorageUnavailable("scan", pattern, str(e)) from e

    async def get_set_members(self, key: str) -> Set[str]:
        try:
            return set(await self.connection.smembers(key))
        except UnicodeDecodeError as e:
            raise DecodeFailure("smembers", key, str(e)) from e
        except RedisError as e:
            raise StorageUnavailable("smembers", key, str(e)) from e

    async def add_set_members(self, key: str, *members: str) -> int:
        if len(members) == 0:
            return 0
        try:
            return await self.connection.sadd(key, *members)
        except RedisError as e:
            raise StorageUnavailable("sadd", key, str(e)) from e

    async def background_save(self):
        try:
            await self.connection.bgsave()
        except ResponseError as e:
            # Redis refuses while another save is running, the running one covers this request
            self.log.warning(f"Background save not started: {e}")
        except RedisError as e:
            raise StorageUnavailable("bgsave", None, str(e)) from e
