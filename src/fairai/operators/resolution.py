"""
Operator Resolution: discovery of operators eligible to serve a solution.

Pipeline:
    registrations → cancellations + liveness proofs → eligibility filter
    → EVM wallet link → registration fee check → fee distribution check
    → stamp ranking

Every registration yields a CandidateResult. Failures while evaluating one
registration become a skip for that registration only; the batch as a
whole never fails because of a single operator.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable

from fairai.core.constants import (
    LIVENESS_WINDOW_SECONDS,
    OP_EVM_WALLET_LINK,
    OP_OPERATOR_ACTIVE_PROOF,
    OP_OPERATOR_CANCELLATION,
    OP_OPERATOR_REGISTRATION,
    PROTOCOL_VERSION,
    TAG_EVM_PUBLIC_KEY,
)
from fairai.core.exceptions import NotFoundError
from fairai.core.logging import get_logger
from fairai.core.types import TransactionNode
from fairai.chain.provider import ChainLogClient
from fairai.ledger.filters import protocol_filters
from fairai.ledger.query import LedgerQueryClient
from fairai.operators.ranking import count_stamps, rank_by_stamps
from fairai.operators.types import (
    CancellationRecord,
    CandidateResult,
    DistributionVerdict,
    EvmWalletLink,
    LivenessProof,
    OperatorCandidate,
    RegistrationRecord,
    SkipReason,
)
from fairai.operators.validation import FeeDistributionValidator, RegistrationFeeValidator

logger = get_logger("operators.resolution")


def check_eligibility(
    registration: RegistrationRecord,
    cancellations: list[CancellationRecord],
    proofs: list[LivenessProof],
    now: float,
    window_seconds: float = LIVENESS_WINDOW_SECONDS,
) -> SkipReason | None:
    """
    Ledger-only eligibility: not cancelled, and proven live recently.

    Returns:
        None if eligible, otherwise the reason it is not
    """
    if any(c.cancels(registration) for c in cancellations):
        return SkipReason.CANCELLED

    if not any(
        p.owner_address == registration.operator_address and p.is_fresh(now, window_seconds)
        for p in proofs
    ):
        return SkipReason.NO_LIVENESS_PROOF

    return None


class _CuratorLookup:
    """
    Curator wallet of the solution being evaluated, resolved on first use.

    A failed lookup is remembered and re-raised for every registration that
    needs it, so each of them is skipped on its own.
    """

    def __init__(self, resolver: "OperatorResolver", curator_address: str) -> None:
        self._resolver = resolver
        self._curator_address = curator_address
        self._lookup: asyncio.Future[EvmWalletLink | None] | None = None

    async def evm_address(self) -> str | None:
        if self._lookup is None:
            self._lookup = asyncio.ensure_future(
                self._resolver.get_linked_evm_wallet(self._curator_address)
            )
        link = await self._lookup
        return link.evm_address if link else None


class OperatorResolver:
    """
    Finds, validates and ranks the operators registered for a solution.

    Usage:
        resolver = OperatorResolver(ledger, chain)
        operators = await resolver.find_available_operators(solution_tx)
        top = operators[0] if operators else None
    """

    def __init__(
        self,
        ledger: LedgerQueryClient,
        chain: ChainLogClient,
        protocol_version: str = PROTOCOL_VERSION,
        registration_validator: RegistrationFeeValidator | None = None,
        distribution_validator: FeeDistributionValidator | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ledger = ledger
        self._chain = chain
        self._protocol_version = protocol_version
        self._registration_validator = registration_validator or RegistrationFeeValidator(chain)
        self._distribution_validator = distribution_validator or FeeDistributionValidator(
            ledger, chain, protocol_version=protocol_version
        )
        self._clock = clock

    @property
    def registration_validator(self) -> RegistrationFeeValidator:
        return self._registration_validator

    @property
    def distribution_validator(self) -> FeeDistributionValidator:
        return self._distribution_validator

    # ─── Public API ──────────────────────────────────────────────────

    async def get_linked_evm_wallet(self, arweave_address: str) -> EvmWalletLink | None:
        """
        Resolve the EVM wallet an Arweave identity has linked.

        Only the newest link record is considered; its body must be a
        0x-prefixed address.
        """
        page = await self._ledger.query(
            tags=protocol_filters(OP_EVM_WALLET_LINK, self._protocol_version),
            owners=[arweave_address],
            first=1,
        )
        if not page.nodes:
            return None

        node = page.nodes[0]
        body = (await self._ledger.fetch_data(node.id)).strip()
        if not body.startswith("0x"):
            logger.debug(f"Wallet link {node.id} for {arweave_address} is not an EVM address")
            return None

        return EvmWalletLink(
            arweave_address=arweave_address,
            evm_address=body,
            evm_public_key=node.get_tag(TAG_EVM_PUBLIC_KEY),
        )

    async def evaluate(self, solution: TransactionNode | str) -> list[CandidateResult]:
        """
        Evaluate every registration for a solution.

        Returns:
            One CandidateResult per registration, in ledger order
        """
        solution_node = await self._resolve_solution(solution)

        registration_nodes = await self._ledger.find(
            tags=protocol_filters(
                OP_OPERATOR_REGISTRATION,
                self._protocol_version,
                Script_Transaction=solution_node.id,
            ),
        )
        if not registration_nodes:
            logger.info(f"No registrations found for solution {solution_node.id}")
            return []

        registration_ids = [node.id for node in registration_nodes]
        owners = list(dict.fromkeys(node.owner.address for node in registration_nodes))

        cancellation_nodes, proof_nodes = await asyncio.gather(
            self._ledger.find(
                tags=protocol_filters(
                    OP_OPERATOR_CANCELLATION,
                    self._protocol_version,
                    Registration_Transaction=registration_ids,
                ),
            ),
            self._ledger.find(
                tags=protocol_filters(OP_OPERATOR_ACTIVE_PROOF, self._protocol_version),
                owners=owners,
            ),
        )
        cancellations = [CancellationRecord.from_node(n) for n in cancellation_nodes]
        proofs = [LivenessProof.from_node(n) for n in proof_nodes]
        now = self._clock()
        curator = _CuratorLookup(self, solution_node.owner.address)

        results: list[CandidateResult] = []
        for node in registration_nodes:
            result = await self._evaluate_one(node, cancellations, proofs, now, curator)
            if not result.ok:
                logger.info(
                    f"Skipping operator registration {result.registration_tx}: "
                    f"{result.skip_reason.value}"
                    + (f" ({result.detail})" if result.detail else "")
                )
            results.append(result)
        return results

    async def find_available_operators(
        self, solution: TransactionNode | str
    ) -> list[OperatorCandidate]:
        """
        Eligible, validated operators for a solution, ranked by stamps.

        Returns an empty list when nothing qualifies; never raises for a
        single bad operator.
        """
        results = await self.evaluate(solution)
        candidates = [r.candidate for r in results if r.candidate is not None]
        if not candidates:
            return []

        stamp_counts = await count_stamps(self._ledger, [c.tx_id for c in candidates])
        ranked = rank_by_stamps(candidates, stamp_counts)
        logger.info(f"{len(ranked)} of {len(results)} registered operators available")
        return ranked

    # ─── Internal Pipeline ───────────────────────────────────────────

    async def _resolve_solution(self, solution: TransactionNode | str) -> TransactionNode:
        if isinstance(solution, TransactionNode):
            return solution
        node = await self._ledger.find_by_id(solution)
        if node is None:
            raise NotFoundError(f"Solution {solution} not found", tx_id=solution)
        return node

    async def _evaluate_one(
        self,
        node: TransactionNode,
        cancellations: list[CancellationRecord],
        proofs: list[LivenessProof],
        now: float,
        curator: _CuratorLookup,
    ) -> CandidateResult:
        try:
            registration = RegistrationRecord.from_node(node)
        except ValueError as e:
            return CandidateResult.skipped(node.id, SkipReason.INVALID_RECORD, str(e))

        reason = check_eligibility(registration, cancellations, proofs, now)
        if reason is not None:
            return CandidateResult.skipped(node.id, reason)

        try:
            return await self._validate(registration, curator)
        except Exception as e:
            logger.warning(f"Error validating operator {registration.operator_address}: {e}")
            return CandidateResult.skipped(node.id, SkipReason.ERROR, str(e))

    async def _validate(
        self,
        registration: RegistrationRecord,
        curator: _CuratorLookup,
    ) -> CandidateResult:
        link = await self.get_linked_evm_wallet(registration.operator_address)
        if link is None:
            return CandidateResult.skipped(registration.tx_id, SkipReason.NO_EVM_WALLET)

        paid = await self._registration_validator.validate(
            link.evm_address, registration.tx_id, registration.timestamp
        )
        if not paid:
            return CandidateResult.skipped(registration.tx_id, SkipReason.REGISTRATION_FEE_UNPAID)

        curator_evm = await curator.evm_address()
        check = await self._distribution_validator.validate(
            link.evm_address,
            registration.operator_address,
            registration.operator_fee,
            registration.timestamp,
            curator_evm,
        )
        # An underpaid operator owes nothing downstream, so it stays eligible
        if check.verdict == DistributionVerdict.INVALID:
            return CandidateResult.skipped(
                registration.tx_id, SkipReason.DISTRIBUTION_INVALID, check.reason
            )

        return CandidateResult.accepted(
            OperatorCandidate(
                registration=registration,
                evm_wallet=link.evm_address,
                evm_public_key=link.evm_public_key,
                arweave_wallet=registration.operator_address,
                operator_fee=registration.operator_fee,
            )
        )
