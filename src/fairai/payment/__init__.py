"""Payment module: USDC transfers that carry an Arweave memo."""

from fairai.payment.base import PaymentSender
from fairai.payment.circle import CirclePaymentSender

__all__ = [
    "PaymentSender",
    "CirclePaymentSender",
]
