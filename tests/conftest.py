from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from fairai.core.config import Config
from fairai.core.constants import PROTOCOL_NAME, PROTOCOL_VERSION
from fairai.core.types import (
    Tag,
    TagFilter,
    TransactionEdge,
    TransactionNode,
    TransactionOwner,
    TransactionPage,
    TransactionState,
    TransactionInfo,
    TransferLog,
    WalletInfo,
)


def make_node(tx_id: str, owner: str, **tags: str) -> TransactionNode:
    """Build a ledger node; tag keys use underscores for dashes."""
    return TransactionNode(
        id=tx_id,
        owner=TransactionOwner(address=owner),
        tags=[Tag(name=k.replace("_", "-"), value=str(v)) for k, v in tags.items()],
    )


def protocol_node(tx_id: str, owner: str, operation: str, **tags: str) -> TransactionNode:
    return make_node(
        tx_id,
        owner,
        Protocol_Name=PROTOCOL_NAME,
        Protocol_Version=PROTOCOL_VERSION,
        Operation_Name=operation,
        **tags,
    )


class FakeLedger:
    """In-memory stand-in for LedgerQueryClient. Nodes are kept newest first."""

    def __init__(self, nodes: list[TransactionNode] | None = None, page_size: int = 100) -> None:
        self.nodes: list[TransactionNode] = list(nodes or [])
        self.data: dict[str, str] = {}
        self.page_size = page_size
        self.queries: list[dict] = []

    def add(self, *nodes: TransactionNode) -> None:
        # New records go to the front, like a HEIGHT_DESC index
        for node in nodes:
            self.nodes.insert(0, node)

    @staticmethod
    def _matches(node: TransactionNode, tag_filter: TagFilter) -> bool:
        return any(
            tag.name == tag_filter.name and tag.value in tag_filter.values for tag in node.tags
        )

    async def query(self, tags=None, owners=None, ids=None, first=None, after=None):
        self.queries.append({"tags": tags, "owners": owners, "ids": ids, "first": first})
        tags = list(tags or [])
        owners = list(owners) if owners is not None else None
        ids = list(ids) if ids is not None else None

        matched = [
            n for n in self.nodes
            if all(self._matches(n, f) for f in tags)
            and (owners is None or n.owner.address in owners)
            and (ids is None or n.id in ids)
        ]
        limit = first if first is not None else self.page_size
        return TransactionPage(
            edges=[TransactionEdge(cursor=n.id, node=n) for n in matched[:limit]],
            has_next_page=len(matched) > limit,
        )

    async def find(self, tags=None, owners=None, ids=None, first=None):
        return (await self.query(tags=tags, owners=owners, ids=ids, first=first)).nodes

    async def find_by_id(self, tx_id):
        page = await self.query(ids=[tx_id], first=1)
        return page.nodes[0] if page.nodes else None

    async def fetch_data(self, tx_id):
        return self.data[tx_id]

    async def close(self):
        return None


class FakeChain:
    """In-memory stand-in for ChainLogClient with 6-decimal USDC."""

    token_address = "0xaf88d065e77c8cC2239327C5EDb3A432268e5831"

    def __init__(self, decimals: int = 6) -> None:
        self.decimals = decimals
        self.transfers: list[TransferLog] = []
        self.memos: dict[str, str] = {}
        self.calls: list[str] = []

    def transfer(self, sender: str, recipient: str, amount, memo: str = "") -> TransferLog:
        n = len(self.transfers)
        log = TransferLog(
            from_address=sender.lower(),
            to_address=recipient.lower(),
            value=int(Decimal(str(amount)) * (10 ** self.decimals)),
            block_number=1000 + n,
            transaction_hash=f"0xhash{n}",
        )
        self.transfers.append(log)
        self.memos[log.transaction_hash] = memo
        return log

    async def get_transfer_logs_to(self, address, timestamp, block_limit=None):
        self.calls.append("get_transfer_logs_to")
        return [t for t in self.transfers if t.to_address == address.lower()]

    async def get_transfer_logs_from_to(
        self, sender, recipient=None, amount=None, timestamp=None, block_limit=None
    ):
        self.calls.append("get_transfer_logs_from_to")
        logs = [
            t for t in self.transfers
            if t.from_address == sender.lower()
            and (recipient is None or t.to_address == recipient.lower())
        ]
        if amount is not None:
            expected = int(Decimal(str(amount)) * (10 ** self.decimals))
            logs = [t for t in logs if t.value == expected]
        return logs

    async def decode_memo(self, tx_hash):
        self.calls.append("decode_memo")
        return self.memos.get(tx_hash, "")

    async def get_decimals(self):
        self.calls.append("get_decimals")
        return self.decimals

    async def get_balance_of(self, address):
        return Decimal("0")

    async def get_allowance(self, owner, spender):
        return Decimal("0")

    async def close(self):
        return None


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture(autouse=True)
def mock_circle_client(monkeypatch):
    """Automatically mock CircleClient for all tests to prevent network calls."""
    mock_client = MagicMock()

    mock_client.get_wallet.return_value = WalletInfo(
        id="wallet-123", address="0xUser", blockchain="ARB", state="LIVE"
    )
    mock_client.create_contract_call.return_value = TransactionInfo(
        id="tx-123", state=TransactionState.INITIATED
    )
    mock_client.get_transaction.return_value = TransactionInfo(
        id="tx-123", state=TransactionState.COMPLETE, tx_hash="0xabc"
    )

    # Patch where it is looked up
    with monkeypatch.context() as m:
        m.setattr("fairai.payment.circle.CircleClient", MagicMock(return_value=mock_client))
        yield mock_client
