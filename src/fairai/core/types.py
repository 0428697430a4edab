"""
Type definitions for the FairAI SDK.

Networks, ledger query results, EVM transfer logs and the custodial wallet
records returned by the payment collaborator.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, TypeAlias

# Type alias for flexible amount input
AmountType: TypeAlias = Decimal | int | float | str


class Network(str, Enum):
    """Supported EVM networks for payments and log reads."""

    ARB = "ARB"
    ARB_SEPOLIA = "ARB-SEPOLIA"

    @classmethod
    def from_string(cls, value: str) -> "Network":
        value_upper = value.upper().replace("_", "-")
        for member in cls:
            if member.value == value_upper:
                return member
        raise ValueError(f"Unknown network: {value}. Supported: {[n.value for n in cls]}")

    def is_testnet(self) -> bool:
        return self.value.endswith("-SEPOLIA")


def to_decimal(amount: AmountType) -> Decimal:
    """Convert an amount to Decimal without going through binary float."""
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, float):
        return Decimal(str(amount))
    return Decimal(amount)


# ─── Ledger (GraphQL) ────────────────────────────────────────────────


@dataclass(frozen=True)
class TagFilter:
    """A GraphQL tag filter: the tag must take one of `values`."""

    name: str
    values: tuple[str, ...]

    @classmethod
    def of(cls, name: str, *values: str) -> "TagFilter":
        return cls(name=name, values=tuple(values))

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "values": list(self.values)}


@dataclass(frozen=True)
class Tag:
    """A name/value tag attached to a ledger transaction."""

    name: str
    value: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "value": self.value}


@dataclass
class TransactionOwner:
    """Owner of a ledger transaction."""

    address: str
    key: str | None = None


@dataclass
class TransactionNode:
    """A ledger transaction as returned by the GraphQL index."""

    id: str
    owner: TransactionOwner
    tags: list[Tag] = field(default_factory=list)

    def get_tag(self, name: str, default: str | None = None) -> str | None:
        """Return the first value of tag `name`, or `default`."""
        for tag in self.tags:
            if tag.name == name:
                return tag.value
        return default

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "TransactionNode":
        owner = data.get("owner") or {}
        return cls(
            id=data["id"],
            owner=TransactionOwner(address=owner.get("address", ""), key=owner.get("key")),
            tags=[Tag(name=t["name"], value=t["value"]) for t in data.get("tags") or []],
        )


@dataclass
class TransactionEdge:
    """An edge in a paginated GraphQL result."""

    cursor: str
    node: TransactionNode


@dataclass
class TransactionPage:
    """One page of a ledger query."""

    edges: list[TransactionEdge] = field(default_factory=list)
    has_next_page: bool = False

    @property
    def nodes(self) -> list[TransactionNode]:
        return [edge.node for edge in self.edges]

    @property
    def end_cursor(self) -> str | None:
        return self.edges[-1].cursor if self.edges else None

    def __len__(self) -> int:
        return len(self.edges)

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "TransactionPage":
        transactions = data.get("transactions") or {}
        page_info = transactions.get("pageInfo") or {}
        return cls(
            edges=[
                TransactionEdge(
                    cursor=edge.get("cursor", ""),
                    node=TransactionNode.from_api_response(edge["node"]),
                )
                for edge in transactions.get("edges") or []
            ],
            has_next_page=bool(page_info.get("hasNextPage", False)),
        )


# ─── Chain (JSON-RPC) ────────────────────────────────────────────────


@dataclass(frozen=True)
class TransferLog:
    """A decoded ERC-20 Transfer event."""

    from_address: str
    to_address: str
    value: int
    block_number: int
    transaction_hash: str
    log_index: int = 0

    @classmethod
    def from_rpc_log(cls, log: dict[str, Any]) -> "TransferLog":
        topics = log.get("topics") or []
        if len(topics) < 3:
            raise ValueError(f"Not a Transfer log: {log.get('transactionHash')}")
        data = log.get("data") or "0x"
        return cls(
            from_address="0x" + topics[1][-40:],
            to_address="0x" + topics[2][-40:],
            value=int(data, 16) if data not in ("0x", "") else 0,
            block_number=int(log.get("blockNumber", "0x0"), 16),
            transaction_hash=log["transactionHash"],
            log_index=int(log.get("logIndex", "0x0"), 16),
        )


# ─── Custodial wallet (Circle) ───────────────────────────────────────


class FeeLevel(str, Enum):
    """Fee level for transactions."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class TransactionState(str, Enum):
    """Transaction state from Circle API."""

    INITIATED = "INITIATED"
    PENDING = "PENDING"
    QUEUED = "QUEUED"
    SENT = "SENT"
    CONFIRMED = "CONFIRMED"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    CLEARED = "CLEARED"
    DENIED = "DENIED"


def _parse_dt(val: str | datetime | None) -> datetime | None:
    if val is None:
        return None
    if isinstance(val, datetime):
        return val
    if isinstance(val, str):
        return datetime.fromisoformat(val.replace("Z", "+00:00"))
    return None


@dataclass
class WalletInfo:
    """Wallet information from Circle API."""

    id: str
    address: str
    blockchain: str
    state: str
    name: str | None = None
    create_date: datetime | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "WalletInfo":
        return cls(
            id=data["id"],
            address=data["address"],
            blockchain=data["blockchain"],
            state=data.get("state", "LIVE"),
            name=data.get("name"),
            create_date=_parse_dt(data.get("createDate")),
        )


@dataclass
class TransactionInfo:
    """Transaction information from Circle API."""

    id: str
    state: TransactionState
    blockchain: str | None = None
    tx_hash: str | None = None
    wallet_id: str | None = None
    destination_address: str | None = None
    create_date: datetime | None = None
    error_reason: str | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "TransactionInfo":
        return cls(
            id=data["id"],
            state=TransactionState(data["state"]),
            blockchain=data.get("blockchain"),
            tx_hash=data.get("txHash"),
            wallet_id=data.get("walletId"),
            destination_address=data.get("destinationAddress"),
            create_date=_parse_dt(data.get("createDate")),
            error_reason=data.get("errorReason"),
        )

    def is_terminal(self) -> bool:
        return self.state in (
            TransactionState.COMPLETE,
            TransactionState.FAILED,
            TransactionState.CANCELLED,
            TransactionState.CLEARED,
            TransactionState.DENIED,
        )

    def is_successful(self) -> bool:
        return self.state in (TransactionState.COMPLETE, TransactionState.CLEARED)
