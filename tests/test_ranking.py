"""Unit tests for stamp counting and ranking."""

from decimal import Decimal

import pytest

from conftest import FakeLedger, make_node
from fairai.core.constants import STAMP_PROTOCOL_NAME
from fairai.operators.ranking import count_stamps, rank_by_stamps, select_top
from fairai.operators.types import OperatorCandidate, RegistrationRecord


def candidate(tx_id: str) -> OperatorCandidate:
    registration = RegistrationRecord(
        tx_id=tx_id, operator_address=f"owner-{tx_id}", solution_tx="sol", operator_fee=Decimal("1")
    )
    return OperatorCandidate(
        registration=registration,
        evm_wallet="0x" + "1" * 40,
        arweave_wallet=registration.operator_address,
        operator_fee=registration.operator_fee,
    )


def stamp(tx_id: str, target: str):
    return make_node(tx_id, "fan", Protocol_Name=STAMP_PROTOCOL_NAME, Data_Source=target)


class TestRankByStamps:
    def test_ascending_and_stable(self):
        a, b, c = candidate("A"), candidate("B"), candidate("C")
        ranked = rank_by_stamps([a, b, c], {"A": 5, "B": 2, "C": 2})
        assert [x.tx_id for x in ranked] == ["B", "C", "A"]

    def test_tie_order_follows_input(self):
        a, b, c = candidate("A"), candidate("B"), candidate("C")
        ranked = rank_by_stamps([a, c, b], {"A": 5, "B": 2, "C": 2})
        assert [x.tx_id for x in ranked] == ["C", "B", "A"]

    def test_unstamped_counts_as_zero(self):
        a, b = candidate("A"), candidate("B")
        ranked = rank_by_stamps([a, b], {"A": 1})
        assert [x.tx_id for x in ranked] == ["B", "A"]

    def test_no_counts_keeps_order(self):
        a, b = candidate("A"), candidate("B")
        assert rank_by_stamps([a, b], None) == [a, b]

    def test_select_top(self):
        a, b = candidate("A"), candidate("B")
        assert select_top([a, b]) is a
        assert select_top([]) is None


class TestCountStamps:
    @pytest.mark.asyncio
    async def test_counts_per_target(self):
        ledger = FakeLedger([stamp("s1", "A"), stamp("s2", "A"), stamp("s3", "B"), stamp("s4", "Z")])

        counts = await count_stamps(ledger, ["A", "B", "C"])

        assert counts == {"A": 2, "B": 1}

    @pytest.mark.asyncio
    async def test_empty_ids_skip_the_query(self):
        ledger = FakeLedger([stamp("s1", "A")])

        assert await count_stamps(ledger, []) is None
        assert ledger.queries == []

    @pytest.mark.asyncio
    async def test_no_stamps_returns_none(self):
        assert await count_stamps(FakeLedger(), ["A"]) is None
