import json
import logging
from dataclasses import dataclass
from typing import List

from .errors import DecodeFailure, RecordMissing
from .record import PendingPayment
from .store.abstract import AbstractPayoutStore

PENDING_PAYMENT_PREFIX = "pending_payment:"


@dataclass(frozen=True)
class LedgerEntry:
    key: str  # Store key the record was listed under
    raw: str  # Stored text as listed, used to detect a rewrite before removal
    payment: PendingPayment


def pending_payment_key(address: str) -> str:
    return f"{PENDING_PAYMENT_PREFIX}{address}"


def decode_pending_payment(key: str, raw: str) -> PendingPayment:
    try:
        return PendingPayment.from_json_dict(json.loads(raw))
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise DecodeFailure("decode_pending_payment", key, str(e)) from e


class PendingPaymentLedger:
    """
    Amounts owed to miners, one JSON record per ``pending_payment:<address>`` key.

    Records are written by the crediting side and removed by the payer once paid. They are never modified in place,
    each write replaces the whole record.
    """

    def __init__(self, store: AbstractPayoutStore):
        self.log = logging.getLogger(__name__)
        self.store = store

    async def put_pending_payment(self, payment: PendingPayment):
        await self.store.set_value(pending_payment_key(payment.address), json.dumps(payment.to_json_dict()))

    async def get_pending_payment(self, address: str) -> PendingPayment:
        key = pending_payment_key(address)
        raw = await self.store.get_value(key)
        if raw is None:
            raise RecordMissing("get_pending_payment", key)
        return decode_pending_payment(key, raw)

    async def remove_pending_payment(self, address: str) -> bool:
        return await self.store.delete_key(pending_payment_key(address))

    async def settle(self, entry: LedgerEntry) -> bool:
        """
        Removes a paid record, but only while the store still holds exactly what was listed. Returns False when the
        crediting side rewrote the record in the meantime; the new record is left in place.
        """
        return await self.store.delete_key_if_value(entry.key, entry.raw)

    async def list_pending_entries(self) -> List[LedgerEntry]:
        """
        Scans the ledger namespace and decodes every record, keeping the key and the stored text it came from.

        Fails fast: one undecodable record, or one failed fetch, fails the whole listing. A key that disappears
        between the scan and the fetch (paid by another process) raises ``RecordMissing``.
        Order is whatever the store enumerates.
        """
        entries: List[LedgerEntry] = []
        for key in await self.store.scan_keys(f"{PENDING_PAYMENT_PREFIX}*"):
            raw = await self.store.get_value(key)
            if raw is None:
                raise RecordMissing("list_pending_payments", key)
            entries.append(LedgerEntry(key, raw, decode_pending_payment(key, raw)))
        return entries

    async def list_pending_payments(self) -> List[PendingPayment]:
        return [entry.payment for entry in await self.list_pending_entries()]
