"""
FairAI - Decentralized inference marketplace SDK

Discover operators registered on Arweave, check that they paid and
redistributed their USDC fees on Arbitrum, and send them paid requests.

Usage:
    >>> from fairai import FairAI
    >>>
    >>> async with FairAI() as fairai:
    ...     operators = await fairai.find_available_operators("SOLUTION_TX")
    ...     result = await fairai.prompt("a cat in a hat", "SOLUTION_TX")
"""

from fairai.client import FairAI
from fairai.context import MarketplaceContext
from fairai.core.config import Config
from fairai.core.exceptions import (
    CollaboratorUnavailableError,
    ConfigurationError,
    FairAIError,
    NetworkError,
    NoOperatorsAvailableError,
    NotFoundError,
    PaymentError,
    UploadError,
    UpstreamUnderpaymentError,
    ValidationError,
)
from fairai.core.types import Network, Tag, TagFilter, TransactionNode, TransactionPage
from fairai.inference import InferenceSubmitter, RequestConfig, SubmissionResult
from fairai.operators import (
    CandidateResult,
    DistributionCheck,
    DistributionVerdict,
    OperatorCandidate,
    OperatorResolver,
    SkipReason,
)

__version__ = "0.1.0"

__all__ = [
    "FairAI",
    "MarketplaceContext",
    "Config",
    "Network",
    # Errors
    "FairAIError",
    "ConfigurationError",
    "CollaboratorUnavailableError",
    "NetworkError",
    "NotFoundError",
    "NoOperatorsAvailableError",
    "PaymentError",
    "UploadError",
    "UpstreamUnderpaymentError",
    "ValidationError",
    # Ledger
    "Tag",
    "TagFilter",
    "TransactionNode",
    "TransactionPage",
    # Operators
    "OperatorResolver",
    "OperatorCandidate",
    "CandidateResult",
    "SkipReason",
    "DistributionCheck",
    "DistributionVerdict",
    # Requests
    "InferenceSubmitter",
    "RequestConfig",
    "SubmissionResult",
]
