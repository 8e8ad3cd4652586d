import uuid
from decimal import Decimal


class PaymentError(Exception):
    pass


class SimulatedPaymentGateway:
    """
    Deposit charges and refunds.

    No card processor is wired up yet, so charges always succeed and the
    intent id is generated locally (prefixed so it is easy to spot in the
    booking_payments table).
    """

    provider = "simulated"

    def create_payment_intent(self, amount: Decimal, payment_intent_id=None) -> str:
        if amount is None or amount <= 0:
            raise PaymentError("Deposit amount must be greater than zero")
        return payment_intent_id or f"pi_simulated_{uuid.uuid4().hex[:24]}"

    def refund(self, payment_intent_id: str) -> bool:
        if not payment_intent_id:
            raise PaymentError("Cannot refund a payment without an intent id")
        return True


gateway = SimulatedPaymentGateway()
