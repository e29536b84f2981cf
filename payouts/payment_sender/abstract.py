from abc import ABC, abstractmethod

from ..record import PendingPayment


class AbstractPaymentSender(ABC):
    """
    Broadcasts payout transactions. Implemented by the wallet integration, which lives outside this package.
    """

    @abstractmethod
    async def send(self, payment: PendingPayment) -> str:
        """
        Pay ``payment.amount`` to ``payment.address`` and return the transaction id. Raises if the payment was not
        sent.
        """
