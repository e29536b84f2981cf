import logging

from .store.abstract import AbstractPayoutStore

PAYOUTS_LOCKED_KEY = "payouts_locked"
LOCKED_SENTINEL = "1"


class PayoutLock:
    """
    Cooperative flag shared by every payout process through the store.

    The flag has no owner token and no expiry: a holder that dies after setting it leaves payouts locked until an
    operator clears the key by hand. Its state is never cached, every call goes to the store.
    """

    def __init__(self, store: AbstractPayoutStore):
        self.log = logging.getLogger(__name__)
        self.store = store

    async def is_locked(self) -> bool:
        # A missing key means unlocked. Any other store failure propagates as StorageUnavailable
        return await self.store.get_value(PAYOUTS_LOCKED_KEY) is not None

    async def acquire(self) -> bool:
        """
        Sets the flag only if nobody holds it, in one store operation. Returns whether this caller took the lock;
        a payout batch must not run when it did not.
        """
        acquired = await self.store.set_value_if_absent(PAYOUTS_LOCKED_KEY, LOCKED_SENTINEL)
        if acquired:
            self.log.info("Payouts locked")
        return acquired

    async def set_locked(self, locked: bool):
        if locked:
            await self.store.set_value(PAYOUTS_LOCKED_KEY, LOCKED_SENTINEL)
            self.log.info("Payouts locked")
        else:
            await self.store.delete_key(PAYOUTS_LOCKED_KEY)
            self.log.info("Payouts unlocked")
