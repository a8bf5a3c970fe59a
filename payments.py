"""
Stripe integration for class checkout
"""
import math
from typing import Optional

import stripe


class PaymentNotConfiguredError(RuntimeError):
    """Raised when a payment is requested but no Stripe key is set"""


class InvalidAmountError(ValueError):
    """Raised when a price is not finite or converts to less than one cent"""


def price_to_cents(price: float) -> int:
    """Convert a price in currency units to the smallest unit (cents)"""
    cents = price * 100
    if not math.isfinite(cents):
        raise InvalidAmountError(f"Price must be a finite number, got {price}")
    return int(cents)


class StripePayments:
    """Creates PaymentIntents for class enrollment"""

    def __init__(self, api_key: Optional[str], currency: str = "usd"):
        self.api_key = api_key
        self.currency = currency

    def get_stripe_client(self):
        """Initialize Stripe client with API key"""
        if not self.api_key:
            raise PaymentNotConfiguredError("Stripe secret key not configured (PAYMENT_SECRET_KEY)")

        stripe.api_key = self.api_key
        return stripe

    def create_payment_intent(self, price: float) -> str:
        """
        Create a card PaymentIntent for a price and return its client secret.

        Raises InvalidAmountError before calling Stripe when the amount is
        below one cent; Stripe's own errors propagate as stripe.error.StripeError.
        """
        amount = price_to_cents(price)
        if amount < 1:
            raise InvalidAmountError(f"Amount must be at least 1 cent, got {amount}")

        stripe_client = self.get_stripe_client()
        try:
            payment_intent = stripe_client.PaymentIntent.create(
                amount=amount,
                currency=self.currency,
                payment_method_types=["card"],
            )
        except stripe.error.StripeError as e:
            print(f"❌ Stripe error creating payment intent: {e}")
            print(f"❌ Error code: {getattr(e, 'code', 'N/A')}")
            raise

        print(f"[PAYMENT] PaymentIntent {payment_intent.id} created for {amount} {self.currency}")
        return payment_intent.client_secret
