"""
Fee validators: did an operator pay what it owes?

Two checks reconcile Arweave records with USDC transfer logs:

- Registration fee: the operator paid 1 USDC to the marketplace with the
  registration transaction id as memo.
- Fee distribution: for the operator's most recent paid request, the
  operator answered every image and forwarded 20% to the solution curator
  and 10% to the marketplace.
"""

from __future__ import annotations

from decimal import Decimal

from fairai.chain import abi
from fairai.chain.provider import ChainLogClient
from fairai.core.constants import (
    CURATOR_SHARE,
    MARKETPLACE_EVM_ADDRESS,
    MARKETPLACE_SHARE,
    OP_INFERENCE_RESPONSE,
    PROTOCOL_VERSION,
    REGISTRATION_USDC_FEE,
    TAG_REQUEST_TX,
)
from fairai.core.exceptions import NotFoundError
from fairai.core.logging import get_logger
from fairai.core.types import AmountType, to_decimal
from fairai.ledger.filters import protocol_filters
from fairai.ledger.query import LedgerQueryClient
from fairai.operators.types import (
    DistributionCheck,
    DistributionVerdict,
    FeeSplit,
    InferenceRequest,
)

logger = get_logger("operators.validation")


def compute_fee_split(per_unit_fee: AmountType, n_images: int = 1) -> FeeSplit:
    """
    Expected fee for a request and the curator/marketplace shares.

    Example:
        >>> compute_fee_split(1, 3)
        FeeSplit(expected=Decimal('3'), curator=Decimal('0.6'), marketplace=Decimal('0.3'))
    """
    expected = to_decimal(per_unit_fee) * n_images
    return FeeSplit(
        expected=expected,
        curator=expected * CURATOR_SHARE,
        marketplace=expected * MARKETPLACE_SHARE,
    )


class RegistrationFeeValidator:
    """Checks that an operator paid the registration fee for a registration."""

    def __init__(
        self,
        chain: ChainLogClient,
        marketplace_address: str = MARKETPLACE_EVM_ADDRESS,
        block_limit: int | None = None,
    ) -> None:
        self._chain = chain
        self._marketplace = marketplace_address
        self._block_limit = block_limit

    async def validate(
        self,
        operator_evm: str,
        registration_tx: str,
        timestamp: float | None,
    ) -> bool:
        """
        Scan operator -> marketplace transfers of exactly the registration
        fee for one whose memo is `registration_tx`.
        """
        logs = await self._chain.get_transfer_logs_from_to(
            operator_evm,
            self._marketplace,
            REGISTRATION_USDC_FEE,
            timestamp,
            self._block_limit,
        )

        for log in logs:
            memo = await self._chain.decode_memo(log.transaction_hash)
            if memo == registration_tx:
                logger.debug(
                    f"Registration {registration_tx} paid in {log.transaction_hash}"
                )
                return True

        logger.debug(
            f"No registration fee payment found for {registration_tx} "
            f"among {len(logs)} transfers from {operator_evm}"
        )
        return False


class FeeDistributionValidator:
    """
    Checks that an operator redistributed the fee of its latest paid request.

    Verdicts:
        VALID: shares were forwarded, or there is nothing to check yet
        INVALID: missing responses, curator share or marketplace share
        UPSTREAM_UNDERPAID: the requester paid the operator too little, so
            nothing downstream can be held against the operator
    """

    def __init__(
        self,
        ledger: LedgerQueryClient,
        chain: ChainLogClient,
        protocol_version: str = PROTOCOL_VERSION,
        marketplace_address: str = MARKETPLACE_EVM_ADDRESS,
        block_limit: int | None = None,
    ) -> None:
        self._ledger = ledger
        self._chain = chain
        self._protocol_version = protocol_version
        self._marketplace = marketplace_address
        self._block_limit = block_limit

    async def validate(
        self,
        operator_evm: str,
        operator_arweave: str,
        per_unit_fee: AmountType,
        request_timestamp: float | None,
        curator_evm: str | None = None,
    ) -> DistributionCheck:
        """
        Validate the operator's most recent incoming payment.

        Args:
            operator_evm: Operator's linked EVM wallet
            operator_arweave: Operator's Arweave address (owns responses)
            per_unit_fee: Operator fee per image, in USDC
            request_timestamp: Anchor of the block window to scan
            curator_evm: Solution curator wallet; None skips the curator check

        Raises:
            NotFoundError: the memo points at a request absent from the ledger
            ValidationError: the request's N-Images tag is not a whole number
        """
        incoming = await self._chain.get_transfer_logs_to(
            operator_evm, request_timestamp, self._block_limit
        )
        if not incoming:
            return DistributionCheck(DistributionVerdict.VALID, "no incoming payments")

        latest = incoming[-1]
        request_tx = await self._chain.decode_memo(latest.transaction_hash)
        if not request_tx:
            return DistributionCheck(
                DistributionVerdict.VALID, "latest payment carries no memo"
            )

        node = await self._ledger.find_by_id(request_tx)
        if node is None:
            raise NotFoundError(f"Request {request_tx} not found", tx_id=request_tx)
        request = InferenceRequest.from_node(node)
        if request.n_images < 1:
            return DistributionCheck(
                DistributionVerdict.INVALID,
                f"request asks for {request.n_images} images",
                request_tx=request_tx,
            )

        split = compute_fee_split(per_unit_fee, request.n_images)
        decimals = await self._chain.get_decimals()
        received = abi.from_base_units(latest.value, decimals)

        if received < split.expected:
            logger.info(
                f"Operator {operator_evm} received {received} for {request_tx}, "
                f"expected {split.expected}"
            )
            return DistributionCheck(
                DistributionVerdict.UPSTREAM_UNDERPAID,
                "operator received less than the expected fee",
                request_tx=request_tx,
                expected_fee=split.expected,
                received_fee=received,
            )

        responses = await self._ledger.query(
            tags=protocol_filters(
                OP_INFERENCE_RESPONSE,
                self._protocol_version,
                **{TAG_REQUEST_TX: request_tx},
            ),
            owners=[operator_arweave],
            first=request.n_images,
        )
        if len(responses) != request.n_images:
            return self._invalid(
                f"{len(responses)} of {request.n_images} responses published",
                request_tx, split, received,
            )

        # Outgoing shares are searched from the request's own time
        window_start = request.timestamp if request.timestamp is not None else request_timestamp

        if curator_evm:
            curator_logs = await self._chain.get_transfer_logs_from_to(
                operator_evm, curator_evm, split.curator, window_start, self._block_limit
            )
            if not curator_logs:
                return self._invalid(
                    f"no curator payment of {split.curator}", request_tx, split, received
                )

        marketplace_logs = await self._chain.get_transfer_logs_from_to(
            operator_evm, self._marketplace, split.marketplace, window_start, self._block_limit
        )
        if not marketplace_logs:
            return self._invalid(
                f"no marketplace payment of {split.marketplace}", request_tx, split, received
            )

        return DistributionCheck(
            DistributionVerdict.VALID,
            "fees distributed",
            request_tx=request_tx,
            expected_fee=split.expected,
            received_fee=received,
        )

    @staticmethod
    def _invalid(
        reason: str, request_tx: str, split: FeeSplit, received: Decimal
    ) -> DistributionCheck:
        return DistributionCheck(
            DistributionVerdict.INVALID,
            reason,
            request_tx=request_tx,
            expected_fee=split.expected,
            received_fee=received,
        )
