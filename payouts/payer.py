import asyncio
import logging
import traceback
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .charts import ChartStore
from .ledger import PendingPaymentLedger
from .lock import PayoutLock
from .payment_sender.abstract import AbstractPaymentSender
from .record import PendingPayment
from .store.abstract import AbstractPayoutStore


@dataclass
class PayoutBatchResult:
    locked: bool = False  # The batch did not run because payouts were already locked
    paid: List[PendingPayment] = field(default_factory=list)
    skipped: List[PendingPayment] = field(default_factory=list)
    transactions: Dict[str, str] = field(default_factory=dict)  # address -> transaction id
    conflicts: List[PendingPayment] = field(default_factory=list)  # Paid, but the record was rewritten meanwhile


class PayoutRunner:
    """
    Runs payout batches: lock, read the ledger, pay every eligible record, unlock.

    If a payment fails half way through a batch the lock stays set, so that nobody pays twice before an operator
    has reconciled the ledger with the wallet.
    """

    def __init__(self, pool_config: Dict, store: AbstractPayoutStore, sender: AbstractPaymentSender):
        self.log = logging.getLogger(__name__)
        self.store = store
        self.sender = sender
        self.lock = PayoutLock(store)
        self.ledger = PendingPaymentLedger(store)
        self.charts = ChartStore(store)

        payouts_config = pool_config.get("payouts", {})

        # Pending amounts below this many smallest units are left in the ledger for a later batch
        self.threshold: int = int(payouts_config.get("threshold", 0))

        # Interval in seconds between payout batches
        self.payment_interval: int = int(payouts_config.get("interval", 600))

        self.payment_loop_task: Optional[asyncio.Task] = None

    async def start(self):
        self.payment_loop_task = asyncio.create_task(self.payment_loop())

    async def stop(self):
        if self.payment_loop_task is not None:
            self.payment_loop_task.cancel()

    def is_eligible(self, payment: PendingPayment, blacklist, whitelist) -> bool:
        if payment.address in blacklist:
            self.log.warning(f"Address {payment.address} is blacklisted, skipping payment of {payment.amount}")
            return False
        if len(whitelist) > 0 and payment.address not in whitelist:
            self.log.warning(f"Address {payment.address} is not whitelisted, skipping payment of {payment.amount}")
            return False
        if payment.amount < self.threshold:
            self.log.info(f"Address {payment.address} owed {payment.amount}, below threshold {self.threshold}")
            return False
        return True

    async def run_batch(self) -> PayoutBatchResult:
        result = PayoutBatchResult()
        if not await self.lock.acquire():
            self.log.warning("Payouts are locked, skipping this batch")
            result.locked = True
            return result

        try:
            entries = await self.ledger.list_pending_entries()
            blacklist = await self.charts.get_blacklist()
            whitelist = await self.charts.get_whitelist()
        except Exception:
            # Nothing was paid yet, the batch can run again later
            await self.lock.set_locked(False)
            raise
        entries.sort(key=lambda entry: (entry.payment.timestamp, entry.payment.address))
        self.log.info(f"Starting payout batch with {len(entries)} pending payments")

        for entry in entries:
            payment = entry.payment
            if not self.is_eligible(payment, blacklist, whitelist):
                result.skipped.append(payment)
                continue
            try:
                tx_id = await self.sender.send(payment)
            except Exception as e:
                self.log.error(
                    f"Failed to pay {payment.amount} to {payment.address}: {e}. "
                    f"Payouts stay locked until the ledger is reconciled manually"
                )
                raise
            self.log.info(f"Paid {payment.amount} to {payment.address}, tx {tx_id}")
            if not await self.ledger.settle(entry):
                self.log.warning(
                    f"{entry.key} was rewritten while {payment.amount} was being paid, leaving the new record. "
                    f"Reconcile it against tx {tx_id}"
                )
                result.conflicts.append(payment)
            result.paid.append(payment)
            result.transactions[payment.address] = tx_id

        await self.lock.set_locked(False)
        if len(result.paid) > 0:
            await self.store.background_save()
        self.log.info(f"Payout batch done: {len(result.paid)} paid, {len(result.skipped)} skipped")
        return result

    async def payment_loop(self):
        while True:
            try:
                await self.run_batch()
                await asyncio.sleep(self.payment_interval)
            except asyncio.CancelledError:
                self.log.info("Cancelled payment_loop, closing")
                return
            except Exception as e:
                error_stack = traceback.format_exc()
                self.log.error(f"Unexpected error in payment_loop: {e} {error_stack}")
                await asyncio.sleep(self.payment_interval)
