"""FairAI - Main SDK entry point."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, AsyncIterator

from fairai.chain.provider import ChainLogClient
from fairai.context import MarketplaceContext
from fairai.core.config import Config
from fairai.core.logging import configure_logging, get_logger
from fairai.core.types import Network, TransactionNode, TransferLog
from fairai.inference.submit import InferenceSubmitter, RequestConfig, SubmissionResult
from fairai.ledger.query import LedgerQueryClient
from fairai.operators.ranking import count_stamps
from fairai.operators.resolution import OperatorResolver
from fairai.operators.types import DistributionCheck, EvmWalletLink, OperatorCandidate
from fairai.payment.base import PaymentSender
from fairai.upload.base import Payload, Uploader


class FairAI:
    """
    Main client for the FairAI marketplace.

    Read-only operations (discovery, validation, stamps) need nothing but
    public endpoints. Submitting requests additionally needs a payment
    sender and an uploader, either configured through the environment or
    passed in.

    Usage:
        async with FairAI() as fairai:
            operators = await fairai.find_available_operators(solution_tx)
            result = await fairai.prompt("a cat in a hat", solution_tx)
    """

    def __init__(
        self,
        config: Config | None = None,
        network: Network | str | None = None,
        log_level: int | str | None = None,
        ledger: LedgerQueryClient | None = None,
        chain: ChainLogClient | None = None,
        payment: PaymentSender | None = None,
        uploader: Uploader | None = None,
    ) -> None:
        """
        Initialize the FairAI client.

        Args:
            config: Full configuration (default: Config.from_env())
            network: Override the target network ("ARB" or "ARB-SEPOLIA")
            log_level: Logging level (default from FAIRAI_LOG_LEVEL, else INFO)
            ledger, chain, payment, uploader: Pre-built collaborators, mainly
                for tests and custom signers
        """
        if config is None:
            config = Config.from_env(network=network)
        elif network is not None:
            config = config.with_updates(
                network=Network.from_string(network) if isinstance(network, str) else network
            )

        configure_logging(
            level=log_level or config.log_level,
            component_levels=config.component_log_levels,
        )
        self._logger = get_logger("client")
        self._logger.info(f"Initializing FairAI SDK (Network: {config.network.value})")

        self._context = MarketplaceContext(
            config, ledger=ledger, chain=chain, payment=payment, uploader=uploader
        )
        self._resolver: OperatorResolver | None = None
        self._submitter: InferenceSubmitter | None = None

    @property
    def config(self) -> Config:
        """Get SDK configuration."""
        return self._context.config

    @property
    def context(self) -> MarketplaceContext:
        """Get the collaborator context."""
        return self._context

    @property
    def resolver(self) -> OperatorResolver:
        if self._resolver is None:
            self._resolver = OperatorResolver(
                self._context.ledger,
                self._context.chain,
                protocol_version=self._context.config.protocol_version,
            )
        return self._resolver

    @property
    def submitter(self) -> InferenceSubmitter:
        if self._submitter is None:
            self._submitter = InferenceSubmitter(self._context, self.resolver)
        return self._submitter

    async def __aenter__(self) -> FairAI:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Release HTTP clients held by the collaborators."""
        await self._context.close()

    # ─── Discovery ───────────────────────────────────────────────────

    async def find_available_operators(
        self, solution: TransactionNode | str
    ) -> list[OperatorCandidate]:
        """Eligible, fee-validated operators for a solution, ranked by stamps."""
        return await self.resolver.find_available_operators(solution)

    async def get_linked_evm_wallet(self, arweave_address: str) -> EvmWalletLink | None:
        return await self.resolver.get_linked_evm_wallet(arweave_address)

    async def count_stamps(self, tx_ids: list[str]) -> dict[str, int] | None:
        return await count_stamps(self._context.ledger, tx_ids)

    # ─── Validation ──────────────────────────────────────────────────

    async def validate_registration(
        self, operator_evm: str, registration_tx: str, timestamp: float | None = None
    ) -> bool:
        """Did `operator_evm` pay the registration fee for `registration_tx`?"""
        return await self.resolver.registration_validator.validate(
            operator_evm, registration_tx, timestamp
        )

    async def validate_distribution_fees(
        self,
        operator_evm: str,
        operator_arweave: str,
        per_unit_fee: Decimal,
        request_timestamp: float | None = None,
        curator_evm: str | None = None,
    ) -> DistributionCheck:
        """Check the fee redistribution of an operator's latest paid request."""
        return await self.resolver.distribution_validator.validate(
            operator_evm, operator_arweave, per_unit_fee, request_timestamp, curator_evm
        )

    # ─── Requests ────────────────────────────────────────────────────

    async def prompt(
        self,
        payload: Payload,
        solution_tx: str,
        operator: OperatorCandidate | None = None,
        conversation_id: int | None = None,
        config: RequestConfig | None = None,
        content_type: str | None = None,
    ) -> SubmissionResult:
        """Submit an inference request and pay the selected operator."""
        return await self.submitter.submit(
            payload,
            solution_tx,
            operator=operator,
            conversation_id=conversation_id,
            config=config,
            content_type=content_type,
        )

    submit = prompt

    async def start_conversation(self, solution_tx: str, conversation_id: int) -> str:
        return await self.submitter.start_conversation(solution_tx, conversation_id)

    async def latest_conversation_id(self, solution_tx: str) -> int | None:
        """Newest conversation the connected wallet started for a solution."""
        owner = await self._context.payment.get_connected_address()
        return await self.submitter.latest_conversation_id(solution_tx, owner)

    # ─── Wallet ──────────────────────────────────────────────────────

    async def get_connected_address(self) -> str:
        return await self._context.payment.get_connected_address()

    async def get_usdc_balance(self) -> Decimal:
        """USDC balance of the connected wallet."""
        return await self._context.payment.get_balance()

    async def get_usdc_allowance(self, spender: str, owner: str | None = None) -> Decimal:
        """USDC allowance `owner` (default: connected wallet) granted to `spender`."""
        if owner is None:
            owner = await self._context.payment.get_connected_address()
        return await self._context.payment.get_allowance(owner, spender)

    async def allow_usdc(self, spender: str, amount: Decimal) -> str:
        """Approve `spender` to move up to `amount` USDC from the connected wallet."""
        return await self._context.payment.approve(spender, amount)

    async def send_usdc_from(self, owner: str, target: str, amount: Decimal, memo: str) -> str:
        """Pay `target` out of the allowance `owner` granted the connected wallet."""
        return await self._context.payment.send_token_from(owner, target, amount, memo)

    async def get_eth_balance(self, address: str | None = None) -> Decimal:
        """ETH balance of `address` (default: connected wallet)."""
        if address is None:
            address = await self._context.payment.get_connected_address()
        return await self._context.chain.get_native_balance(address)

    async def watch_payments(
        self, address: str | None = None, poll_interval: float | None = None
    ) -> AsyncIterator[list[TransferLog]]:
        """Yield batches of new USDC transfers to `address` (default: connected wallet)."""
        if address is None:
            address = await self._context.payment.get_connected_address()
        async for logs in self._context.chain.watch_transfers_to(address, poll_interval):
            yield logs

    def describe(self) -> dict[str, Any]:
        config = self._context.config
        return {
            "network": config.network.value,
            "protocol_version": config.protocol_version,
            "usdc": config.usdc_address,
            "graphql_url": config.graphql_url,
            "payments_configured": config.has_payment_credentials,
            "uploads_configured": bool(config.upload_url),
        }
