"""
Exception hierarchy for the FairAI SDK.

All SDK-specific exceptions inherit from FairAIError for easy catching.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any


class FairAIError(Exception):
    """
    Base exception for all FairAI SDK errors.

    Catch this to handle any SDK-related exception.

    Example:
        >>> try:
        ...     await client.prompt("hello", solution_tx)
        ... except FairAIError as e:
        ...     print(f"Marketplace error: {e}")
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(FairAIError):
    """
    Configuration is missing or invalid.

    Raised when:
    - Required configuration values are not provided
    - Configuration values fail validation
    """

    pass


class CollaboratorUnavailableError(ConfigurationError):
    """
    A ledger, chain, payment or upload client was needed but never configured.

    Raised before any network call is attempted.
    """

    def __init__(
        self,
        message: str,
        collaborator: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.collaborator = collaborator

    def __str__(self) -> str:
        return f"[{self.collaborator}] {self.message}"


class NotFoundError(FairAIError):
    """
    A referenced solution, script or request record is absent on the ledger.
    """

    def __init__(
        self,
        message: str,
        tx_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.tx_id = tx_id


class NoOperatorsAvailableError(FairAIError):
    """
    Operator resolution produced an empty candidate list.
    """

    def __init__(
        self,
        message: str,
        solution_tx: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.solution_tx = solution_tx


class UpstreamUnderpaymentError(FairAIError):
    """
    The operator received less than the expected fee for a request.

    Distinct from a failed distribution check: the operator was underpaid by
    the requester, it did not under-distribute to the curator or marketplace.
    """

    def __init__(
        self,
        message: str,
        request_tx: str,
        expected_fee: Decimal,
        received_fee: Decimal,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.request_tx = request_tx
        self.expected_fee = expected_fee
        self.received_fee = received_fee
        self.shortfall = expected_fee - received_fee

    def __str__(self) -> str:
        return (
            f"{self.message} | "
            f"Expected: {self.expected_fee}, Received: {self.received_fee}, "
            f"Shortfall: {self.shortfall}"
        )


class ValidationError(FairAIError):
    """
    Input validation error.

    Raised when:
    - Required parameters are missing
    - Parameter values are out of range (e.g. image count)
    """

    pass


class NetworkError(FairAIError):
    """
    Network or API communication error.

    Raised when:
    - HTTP request fails (timeout, connection error)
    - GraphQL or JSON-RPC endpoint returns an error payload
    - Every configured RPC provider failed
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code
        self.url = url

    def is_rate_limited(self) -> bool:
        """Check if this is a rate limit error."""
        return self.status_code == 429

    def is_server_error(self) -> bool:
        """Check if this is a server-side error."""
        return self.status_code is not None and 500 <= self.status_code < 600


class PaymentError(FairAIError):
    """
    USDC payment could not be sent.

    Raised when:
    - The custodial wallet service rejects the transaction
    - The transaction fails or never reports a hash
    """

    def __init__(
        self,
        message: str,
        recipient: str | None = None,
        amount: Decimal | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.recipient = recipient
        self.amount = amount


class UploadError(FairAIError):
    """
    Publishing a record on the ledger failed.
    """

    pass
