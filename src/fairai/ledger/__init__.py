"""Ledger module: Arweave GraphQL reads and tag-filter builders."""

from fairai.ledger.filters import protocol_filters
from fairai.ledger.query import LedgerQueryClient

__all__ = [
    "LedgerQueryClient",
    "protocol_filters",
]
