"""
USDC payments through a Circle developer-controlled wallet.
"""

from __future__ import annotations

import asyncio
import time
from decimal import Decimal

from fairai.chain import abi
from fairai.chain.provider import ChainLogClient
from fairai.core.circle_client import CircleClient
from fairai.core.config import Config
from fairai.core.exceptions import ConfigurationError, PaymentError
from fairai.core.logging import get_logger
from fairai.core.types import FeeLevel, TransactionInfo, TransactionState
from fairai.payment.base import PaymentSender

logger = get_logger("payment.circle")


class CirclePaymentSender(PaymentSender):
    """
    Sends memo-carrying USDC transfers from a Circle wallet, directly or
    from an allowance another wallet granted it.

    Amounts are scaled with the token decimals read from the chain on every
    payment. The sender waits for Circle to report an on-chain hash.
    """

    def __init__(
        self,
        config: Config,
        chain: ChainLogClient,
        circle_client: CircleClient | None = None,
    ) -> None:
        if not config.wallet_id:
            raise ConfigurationError("wallet_id is required for payments")
        self._config = config
        self._chain = chain
        self._circle = circle_client or CircleClient(config)
        self._address: str | None = None

    async def get_connected_address(self) -> str:
        if self._address is None:
            wallet = self._circle.get_wallet(self._config.wallet_id)
            self._address = wallet.address
        return self._address

    async def get_balance(self) -> Decimal:
        return await self._chain.get_balance_of(await self.get_connected_address())

    async def get_allowance(self, owner: str, spender: str) -> Decimal:
        return await self._chain.get_allowance(owner, spender)

    async def send_token(self, target: str, amount: Decimal, memo: str) -> str:
        if amount <= 0:
            raise PaymentError("Amount must be positive", recipient=target, amount=amount)

        decimals = await self._chain.get_decimals()
        call_data = abi.encode_transfer_with_memo(
            target, abi.to_base_units(amount, decimals), memo
        )

        logger.info(f"Sending {amount} USDC to {target} (memo: {memo})")
        return await self._execute(call_data, "USDC transfer", target, amount)

    async def send_token_from(self, owner: str, target: str, amount: Decimal, memo: str) -> str:
        if amount <= 0:
            raise PaymentError("Amount must be positive", recipient=target, amount=amount)

        decimals = await self._chain.get_decimals()
        call_data = abi.encode_transfer_from_with_memo(
            owner, target, abi.to_base_units(amount, decimals), memo
        )

        logger.info(f"Sending {amount} USDC from {owner} to {target} (memo: {memo})")
        return await self._execute(call_data, "USDC transferFrom", target, amount)

    async def approve(self, spender: str, amount: Decimal) -> str:
        # Zero revokes an existing allowance
        if amount < 0:
            raise PaymentError("Allowance cannot be negative", recipient=spender, amount=amount)

        decimals = await self._chain.get_decimals()
        call_data = abi.encode_approve(spender, abi.to_base_units(amount, decimals))

        logger.info(f"Approving {spender} to spend {amount} USDC")
        return await self._execute(call_data, "USDC approval", spender, amount)

    async def _execute(self, call_data: str, action: str, recipient: str, amount: Decimal) -> str:
        """Submit call data to the USDC contract and wait for its on-chain hash."""
        tx = self._circle.create_contract_call(
            wallet_id=self._config.wallet_id,
            contract_address=self._chain.token_address,
            call_data=call_data,
            fee_level=FeeLevel.MEDIUM,
        )
        tx = await self._wait_for_hash(tx)

        if tx.state in (TransactionState.FAILED, TransactionState.CANCELLED, TransactionState.DENIED):
            raise PaymentError(
                f"{action} {tx.id} ended in state {tx.state.value}",
                recipient=recipient,
                amount=amount,
                details={"error_reason": tx.error_reason},
            )
        if not tx.tx_hash:
            raise PaymentError(
                f"{action} {tx.id} has no on-chain hash after "
                f"{self._config.transaction_poll_timeout}s",
                recipient=recipient,
                amount=amount,
                details={"state": tx.state.value},
            )
        return tx.tx_hash

    async def _wait_for_hash(self, tx: TransactionInfo) -> TransactionInfo:
        """Poll until the transaction has a hash or reaches a terminal state."""
        start_time = time.monotonic()
        while not tx.tx_hash and not tx.is_terminal():
            if time.monotonic() - start_time >= self._config.transaction_poll_timeout:
                return tx
            await asyncio.sleep(self._config.transaction_poll_interval)
            tx = self._circle.get_transaction(tx.id)
        return tx
