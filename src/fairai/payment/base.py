"""
Base payment sender interface.

The submission orchestrator only needs to know who is paying and how to
send USDC with a memo; how the transaction gets signed is up to the
implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal


class PaymentSender(ABC):
    """
    Abstract base class for USDC payment senders.

    Implementations:
    - CirclePaymentSender: Circle developer-controlled wallet
    """

    @abstractmethod
    async def get_connected_address(self) -> str:
        """EVM address that pays for requests."""
        ...

    @abstractmethod
    async def send_token(self, target: str, amount: Decimal, memo: str) -> str:
        """
        Send `amount` USDC to `target` with `memo` appended to the call data.

        Returns:
            The on-chain transaction hash
        """
        ...

    @abstractmethod
    async def send_token_from(self, owner: str, target: str, amount: Decimal, memo: str) -> str:
        """
        Spend `owner`'s allowance: send `amount` USDC to `target` with `memo`.

        The connected address must have been approved by `owner` for at
        least `amount`.

        Returns:
            The on-chain transaction hash
        """
        ...

    @abstractmethod
    async def approve(self, spender: str, amount: Decimal) -> str:
        """Allow `spender` to move up to `amount` USDC from the connected address."""
        ...

    @abstractmethod
    async def get_balance(self) -> Decimal:
        """USDC balance of the connected address."""
        ...

    @abstractmethod
    async def get_allowance(self, owner: str, spender: str) -> Decimal:
        """USDC allowance granted by `owner` to `spender`."""
        ...
