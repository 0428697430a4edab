"""
Marketplace context: the collaborator handles every operation works with.

Ledger and chain clients are created from the config on first use. Payment
and upload need credentials; asking for them when they are not configured
raises CollaboratorUnavailableError before any network call.
"""

from __future__ import annotations

from fairai.chain.provider import ChainLogClient
from fairai.core.config import Config
from fairai.core.exceptions import CollaboratorUnavailableError
from fairai.core.logging import get_logger
from fairai.ledger.query import LedgerQueryClient
from fairai.payment.base import PaymentSender
from fairai.upload.base import Uploader

logger = get_logger("context")


class MarketplaceContext:
    """Holds configuration and lazily-initialized collaborator clients."""

    def __init__(
        self,
        config: Config,
        ledger: LedgerQueryClient | None = None,
        chain: ChainLogClient | None = None,
        payment: PaymentSender | None = None,
        uploader: Uploader | None = None,
    ) -> None:
        self._config = config
        self._ledger = ledger
        self._chain = chain
        self._payment = payment
        self._uploader = uploader

    @property
    def config(self) -> Config:
        return self._config

    @property
    def ledger(self) -> LedgerQueryClient:
        if self._ledger is None:
            self._ledger = LedgerQueryClient(self._config)
        return self._ledger

    @property
    def chain(self) -> ChainLogClient:
        if self._chain is None:
            self._chain = ChainLogClient(self._config)
        return self._chain

    @property
    def payment(self) -> PaymentSender:
        if self._payment is None:
            if not self._config.has_payment_credentials:
                raise CollaboratorUnavailableError(
                    "Payment sender not configured. Set CIRCLE_API_KEY, ENTITY_SECRET "
                    "and FAIRAI_WALLET_ID or pass a PaymentSender",
                    collaborator="payment",
                )
            from fairai.payment.circle import CirclePaymentSender

            logger.debug(f"Creating Circle payment sender (key: {self._config.masked_api_key()})")
            self._payment = CirclePaymentSender(self._config, self.chain)
        return self._payment

    @property
    def uploader(self) -> Uploader:
        if self._uploader is None:
            if not self._config.upload_url:
                raise CollaboratorUnavailableError(
                    "Uploader not configured. Set FAIRAI_UPLOAD_URL or pass an Uploader",
                    collaborator="upload",
                )
            from fairai.upload.http import HttpUploader

            self._uploader = HttpUploader(self._config)
        return self._uploader

    async def close(self) -> None:
        """Close any client this context holds."""
        if self._ledger is not None:
            await self._ledger.close()
        if self._chain is not None:
            await self._chain.close()
        if self._uploader is not None:
            await self._uploader.close()
