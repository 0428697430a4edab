"""
Operator domain types.

Ledger records parsed from tagged transactions, the candidate produced by
discovery, and the explicit per-candidate and per-validation outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from fairai.core.constants import (
    TAG_CONTENT_TYPE,
    TAG_CONVERSATION_ID,
    TAG_N_IMAGES,
    TAG_OPERATOR_FEE,
    TAG_REGISTRATION_TX,
    TAG_SCRIPT_TX,
    TAG_UNIX_TIME,
)
from fairai.core.exceptions import UpstreamUnderpaymentError, ValidationError
from fairai.core.types import TransactionNode


def _parse_timestamp(value: str | None) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except ValueError:
        return None


# ─── Ledger records ─────────────────────────────────────────────────


@dataclass(frozen=True)
class RegistrationRecord:
    """An operator's registration to serve a solution."""

    tx_id: str
    operator_address: str
    solution_tx: str
    operator_fee: Decimal
    timestamp: float | None = None

    @classmethod
    def from_node(cls, node: TransactionNode) -> "RegistrationRecord":
        raw_fee = node.get_tag(TAG_OPERATOR_FEE)
        try:
            fee = Decimal(raw_fee) if raw_fee is not None else None
        except InvalidOperation:
            fee = None
        if fee is None or not fee.is_finite() or fee < 0:
            raise ValueError(f"Registration {node.id} has invalid Operator-Fee: {raw_fee!r}")

        return cls(
            tx_id=node.id,
            operator_address=node.owner.address,
            solution_tx=node.get_tag(TAG_SCRIPT_TX, ""),
            operator_fee=fee,
            timestamp=_parse_timestamp(node.get_tag(TAG_UNIX_TIME)),
        )


@dataclass(frozen=True)
class CancellationRecord:
    """Revokes the registration it references, if posted by the same owner."""

    registration_tx: str
    owner_address: str

    @classmethod
    def from_node(cls, node: TransactionNode) -> "CancellationRecord":
        return cls(
            registration_tx=node.get_tag(TAG_REGISTRATION_TX, ""),
            owner_address=node.owner.address,
        )

    def cancels(self, registration: RegistrationRecord) -> bool:
        return (
            self.owner_address == registration.operator_address
            and self.registration_tx == registration.tx_id
        )


@dataclass(frozen=True)
class LivenessProof:
    """Periodic proof that an operator is online."""

    owner_address: str
    timestamp: float | None

    @classmethod
    def from_node(cls, node: TransactionNode) -> "LivenessProof":
        return cls(
            owner_address=node.owner.address,
            timestamp=_parse_timestamp(node.get_tag(TAG_UNIX_TIME)),
        )

    def is_fresh(self, now: float, window_seconds: float) -> bool:
        """Strictly newer than ``now - window_seconds``."""
        return self.timestamp is not None and self.timestamp > now - window_seconds


@dataclass(frozen=True)
class EvmWalletLink:
    """Links an Arweave identity to the EVM wallet it pays and gets paid from."""

    arweave_address: str
    evm_address: str
    evm_public_key: str | None = None


@dataclass
class InferenceRequest:
    """A request record published by a user."""

    tx_id: str
    owner_address: str
    solution_tx: str | None = None
    conversation_id: str | None = None
    timestamp: float | None = None
    n_images: int = 1
    content_type: str | None = None
    tags: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_node(cls, node: TransactionNode) -> "InferenceRequest":
        raw_n_images = node.get_tag(TAG_N_IMAGES, "1")
        try:
            parsed = Decimal(raw_n_images)
        except InvalidOperation:
            parsed = None
        # "2" and "2.0" both mean two images
        if parsed is None or not parsed.is_finite() or parsed != parsed.to_integral_value():
            raise ValidationError(
                f"Request {node.id} has invalid N-Images: {raw_n_images!r}",
                details={"tx_id": node.id, "n_images": raw_n_images},
            )
        n_images = int(parsed)

        return cls(
            tx_id=node.id,
            owner_address=node.owner.address,
            solution_tx=node.get_tag(TAG_SCRIPT_TX),
            conversation_id=node.get_tag(TAG_CONVERSATION_ID),
            timestamp=_parse_timestamp(node.get_tag(TAG_UNIX_TIME)),
            n_images=n_images,
            content_type=node.get_tag(TAG_CONTENT_TYPE),
            tags={tag.name: tag.value for tag in node.tags},
        )


# ─── Discovery output ───────────────────────────────────────────────


@dataclass(frozen=True)
class OperatorCandidate:
    """An operator that passed discovery and can receive requests."""

    registration: RegistrationRecord
    evm_wallet: str
    arweave_wallet: str
    operator_fee: Decimal
    evm_public_key: str | None = None

    @property
    def tx_id(self) -> str:
        return self.registration.tx_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "registration_tx": self.registration.tx_id,
            "evm_wallet": self.evm_wallet,
            "evm_public_key": self.evm_public_key,
            "arweave_wallet": self.arweave_wallet,
            "operator_fee": str(self.operator_fee),
        }


class SkipReason(str, Enum):
    """Why a registration did not become a candidate."""

    INVALID_RECORD = "invalid_record"
    CANCELLED = "cancelled"
    NO_LIVENESS_PROOF = "no_liveness_proof"
    NO_EVM_WALLET = "no_evm_wallet"
    REGISTRATION_FEE_UNPAID = "registration_fee_unpaid"
    DISTRIBUTION_INVALID = "distribution_invalid"
    ERROR = "error"


@dataclass(frozen=True)
class CandidateResult:
    """Outcome of evaluating one registration: a candidate or a skip."""

    registration_tx: str
    candidate: OperatorCandidate | None = None
    skip_reason: SkipReason | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.candidate is not None

    @classmethod
    def accepted(cls, candidate: OperatorCandidate) -> "CandidateResult":
        return cls(registration_tx=candidate.tx_id, candidate=candidate)

    @classmethod
    def skipped(
        cls, registration_tx: str, reason: SkipReason, detail: str | None = None
    ) -> "CandidateResult":
        return cls(registration_tx=registration_tx, skip_reason=reason, detail=detail)


# ─── Fee validation ─────────────────────────────────────────────────


@dataclass(frozen=True)
class FeeSplit:
    """Expected fee for a request and the shares owed downstream."""

    expected: Decimal
    curator: Decimal
    marketplace: Decimal


class DistributionVerdict(str, Enum):
    VALID = "VALID"
    INVALID = "INVALID"
    UPSTREAM_UNDERPAID = "UPSTREAM_UNDERPAID"


@dataclass(frozen=True)
class DistributionCheck:
    """Result of checking an operator's latest fee redistribution."""

    verdict: DistributionVerdict
    reason: str
    request_tx: str | None = None
    expected_fee: Decimal | None = None
    received_fee: Decimal | None = None

    @property
    def is_valid(self) -> bool:
        return self.verdict == DistributionVerdict.VALID

    def raise_for_underpayment(self) -> None:
        """Raise UpstreamUnderpaymentError if the operator was underpaid."""
        if self.verdict == DistributionVerdict.UPSTREAM_UNDERPAID:
            raise UpstreamUnderpaymentError(
                self.reason,
                request_tx=self.request_tx or "",
                expected_fee=self.expected_fee or Decimal(0),
                received_fee=self.received_fee or Decimal(0),
            )
