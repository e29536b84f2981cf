import asyncio
import unittest
from typing import List, Optional
from unittest.mock import AsyncMock

from fakeredis import FakeAsyncRedis, FakeServer

from payouts.charts import BLACKLIST_KEY, WHITELIST_KEY
from payouts.errors import DecodeFailure
from payouts.ledger import PendingPaymentLedger
from payouts.lock import PayoutLock
from payouts.payer import PayoutRunner
from payouts.payment_sender.abstract import AbstractPaymentSender
from payouts.record import PendingPayment
from payouts.store.redis_store import RedisPayoutStore


class RecordingSender(AbstractPaymentSender):
    def __init__(self, fail_for: Optional[str] = None):
        self.sent: List[PendingPayment] = []
        self.fail_for = fail_for

    async def send(self, payment: PendingPayment) -> str:
        if payment.address == self.fail_for:
            raise ValueError("insufficient funds")
        self.sent.append(payment)
        return f"0xtx{len(self.sent)}"


class TestPayoutRunner(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.server = FakeServer()
        self.store = RedisPayoutStore(connection=FakeAsyncRedis(server=self.server, decode_responses=True))
        await self.store.connect()
        self.store.background_save = AsyncMock()
        self.ledger = PendingPaymentLedger(self.store)
        self.lock = PayoutLock(self.store)
        self.pool_config = {"payouts": {"threshold": 100, "interval": 1}}

        self.alice = PendingPayment("0xalice", 1000, 1700000300)
        self.bob = PendingPayment("0xbob", 2000, 1700000100)
        self.carol = PendingPayment("0xcarol", 3000, 1700000200)
        for payment in (self.alice, self.bob, self.carol):
            await self.ledger.put_pending_payment(payment)

    async def test_pays_everything_in_timestamp_order(self):
        sender = RecordingSender()
        runner = PayoutRunner(self.pool_config, self.store, sender)
        result = await runner.run_batch()

        assert sender.sent == [self.bob, self.carol, self.alice]
        assert result.paid == [self.bob, self.carol, self.alice]
        assert result.transactions == {"0xbob": "0xtx1", "0xcarol": "0xtx2", "0xalice": "0xtx3"}
        assert result.skipped == []
        assert not result.locked
        assert await self.ledger.list_pending_payments() == []
        assert not await self.lock.is_locked()
        self.store.background_save.assert_awaited_once()

    async def test_locked_batch_does_nothing(self):
        await self.lock.set_locked(True)
        sender = RecordingSender()
        result = await PayoutRunner(self.pool_config, self.store, sender).run_batch()

        assert result.locked
        assert sender.sent == []
        assert len(await self.ledger.list_pending_payments()) == 3
        assert await self.lock.is_locked()

    async def test_access_lists_and_threshold(self):
        await self.store.add_set_members(BLACKLIST_KEY, "0xbob")
        await self.store.add_set_members(WHITELIST_KEY, "0xbob", "0xcarol", "0xdave")
        dave = PendingPayment("0xdave", 50, 1700000000)
        await self.ledger.put_pending_payment(dave)

        sender = RecordingSender()
        result = await PayoutRunner(self.pool_config, self.store, sender).run_batch()

        # bob is blacklisted, alice is not whitelisted, dave is below the threshold
        assert sender.sent == [self.carol]
        assert set(result.skipped) == {self.alice, self.bob, dave}
        assert set(await self.ledger.list_pending_payments()) == {self.alice, self.bob, dave}
        assert not await self.lock.is_locked()

    async def test_nothing_to_pay(self):
        for address in ("0xalice", "0xbob", "0xcarol"):
            await self.ledger.remove_pending_payment(address)
        result = await PayoutRunner(self.pool_config, self.store, RecordingSender()).run_batch()
        assert result.paid == []
        assert not await self.lock.is_locked()
        self.store.background_save.assert_not_awaited()

    async def test_failed_payment_keeps_lock(self):
        sender = RecordingSender(fail_for="0xcarol")
        runner = PayoutRunner(self.pool_config, self.store, sender)
        with self.assertRaises(ValueError):
            await runner.run_batch()

        assert sender.sent == [self.bob]
        assert set(await self.ledger.list_pending_payments()) == {self.alice, self.carol}
        assert await self.lock.is_locked()

        # Next batch refuses to run until the lock is cleared
        result = await runner.run_batch()
        assert result.locked
        assert sender.sent == [self.bob]

    async def test_undecodable_ledger_releases_lock(self):
        await self.store.set_value("pending_payment:0xbroken", "garbage")
        sender = RecordingSender()
        with self.assertRaises(DecodeFailure):
            await PayoutRunner(self.pool_config, self.store, sender).run_batch()
        assert sender.sent == []
        assert not await self.lock.is_locked()

    async def test_concurrent_batches_pay_once(self):
        # Both runners reach the lock together, as two pool processes sharing one store would
        arrived = []
        both_arrived = asyncio.Event()
        stores = []
        for _ in range(2):
            store = RedisPayoutStore(connection=FakeAsyncRedis(server=self.server, decode_responses=True))
            await store.connect()
            store.background_save = AsyncMock()
            set_value_if_absent = store.set_value_if_absent

            async def gated_set_value_if_absent(key, value, set_value_if_absent=set_value_if_absent):
                arrived.append(key)
                if len(arrived) == 2:
                    both_arrived.set()
                await both_arrived.wait()
                return await set_value_if_absent(key, value)

            store.set_value_if_absent = gated_set_value_if_absent
            stores.append(store)

        sender = RecordingSender()
        runners = [PayoutRunner(self.pool_config, store, sender) for store in stores]
        results = await asyncio.gather(*(runner.run_batch() for runner in runners))

        assert sorted(result.locked for result in results) == [False, True]
        assert sorted(sender.sent, key=lambda p: p.address) == [self.alice, self.bob, self.carol]
        assert await self.ledger.list_pending_payments() == []
        assert not await self.lock.is_locked()

    async def test_credit_during_payment_is_kept(self):
        ledger = self.ledger
        bumped = PendingPayment("0xcarol", 3500, 1700000400)

        class CreditingSender(RecordingSender):
            async def send(self, payment: PendingPayment) -> str:
                tx_id = await super().send(payment)
                if payment.address == "0xcarol":
                    # A new share credit lands while the transaction is in flight
                    await ledger.put_pending_payment(bumped)
                return tx_id

        sender = CreditingSender()
        result = await PayoutRunner(self.pool_config, self.store, sender).run_batch()

        assert sender.sent == [self.bob, self.carol, self.alice]
        assert result.conflicts == [self.carol]
        assert await self.ledger.list_pending_payments() == [bumped]
        assert not await self.lock.is_locked()

    async def test_payment_loop_start_stop(self):
        sender = RecordingSender()
        runner = PayoutRunner(self.pool_config, self.store, sender)
        await runner.start()
        for _ in range(100):
            if len(sender.sent) == 3:
                break
            await asyncio.sleep(0.01)
        await runner.stop()
        assert len(sender.sent) == 3


if __name__ == "__main__":
    unittest.main()
