"""Operators module: discovery, fee validation and ranking."""

from fairai.operators.ranking import count_stamps, rank_by_stamps, select_top
from fairai.operators.resolution import OperatorResolver, check_eligibility
from fairai.operators.types import (
    CancellationRecord,
    CandidateResult,
    DistributionCheck,
    DistributionVerdict,
    EvmWalletLink,
    FeeSplit,
    InferenceRequest,
    LivenessProof,
    OperatorCandidate,
    RegistrationRecord,
    SkipReason,
)
from fairai.operators.validation import (
    FeeDistributionValidator,
    RegistrationFeeValidator,
    compute_fee_split,
)

__all__ = [
    "OperatorResolver",
    "FeeDistributionValidator",
    "RegistrationFeeValidator",
    "check_eligibility",
    "compute_fee_split",
    "count_stamps",
    "rank_by_stamps",
    "select_top",
    "CancellationRecord",
    "CandidateResult",
    "DistributionCheck",
    "DistributionVerdict",
    "EvmWalletLink",
    "FeeSplit",
    "InferenceRequest",
    "LivenessProof",
    "OperatorCandidate",
    "RegistrationRecord",
    "SkipReason",
]
