from abc import ABC, abstractmethod
from typing import List, Optional, Set


class AbstractPayoutStore(ABC):
    """
    Base class for asyncio-related key-value stores holding the pool's payout data.
    """

    def __init__(self):
        self.connection = None

    @abstractmethod
    async def connect(self):
        """Perform IO-related initialization and check the store answers. Failure here is fatal"""

    @abstractmethod
    async def close(self):
        """Release the connection"""

    @abstractmethod
    async def get_value(self, key: str) -> Optional[str]:
        """Fetch the string stored at ``key``. Returns ``None`` if the key is absent"""

    @abstractmethod
    async def set_value(self, key: str, value: str):
        """Store ``value`` at ``key``, replacing whatever was there"""

    @abstractmethod
    async def set_value_if_absent(self, key: str, value: str) -> bool:
        """Atomically store ``value`` at ``key`` only if the key does not exist. Returns whether it was stored"""

    @abstractmethod
    async def delete_key(self, key: str) -> bool:
        """Remove ``key``. Returns whether it existed; removing an absent key is not an error"""

    @abstractmethod
    async def delete_key_if_value(self, key: str, expected: str) -> bool:
        """Atomically remove ``key`` only while it still holds ``expected``. Returns whether it was removed"""

    @abstractmethod
    async def scan_keys(self, pattern: str) -> List[str]:
        """Fetch every key matching the glob-style ``pattern``"""

    @abstractmethod
    async def get_set_members(self, key: str) -> Set[str]:
        """Fetch all members of the set at ``key``. An absent key is an empty set"""

    @abstractmethod
    async def add_set_members(self, key: str, *members: str) -> int:
        """Add ``members`` to the set at ``key``, returns how many were new"""

    @abstractmethod
    async def background_save(self):
        """Ask the store to persist a snapshot of its data in the background"""
