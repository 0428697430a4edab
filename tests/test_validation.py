"""Tests for registration fee and fee distribution validation."""

from decimal import Decimal

import pytest

from conftest import FakeChain, FakeLedger, protocol_node
from fairai.core.constants import (
    MARKETPLACE_EVM_ADDRESS,
    OP_INFERENCE_REQUEST,
    OP_INFERENCE_RESPONSE,
)
from fairai.core.exceptions import NotFoundError, UpstreamUnderpaymentError, ValidationError
from fairai.operators.types import DistributionVerdict
from fairai.operators.validation import (
    FeeDistributionValidator,
    RegistrationFeeValidator,
    compute_fee_split,
)

OPERATOR_EVM = "0x00000000000000000000000000000000000000a1"
OPERATOR_AR = "operator-arweave"
CURATOR_EVM = "0x00000000000000000000000000000000000000c1"
USER_EVM = "0x00000000000000000000000000000000000000b1"


class TestComputeFeeSplit:
    def test_literal_split(self):
        split = compute_fee_split(1, 3)
        assert split.expected == Decimal("3")
        assert split.curator == Decimal("0.6")
        assert split.marketplace == Decimal("0.3")

    def test_defaults_to_one_image(self):
        split = compute_fee_split(Decimal("2.5"))
        assert split.expected == Decimal("2.5")
        assert split.curator == Decimal("0.5")
        assert split.marketplace == Decimal("0.25")

    def test_float_fee_has_no_binary_error(self):
        split = compute_fee_split(0.1, 3)
        assert split.expected == Decimal("0.3")
        assert split.curator == Decimal("0.06")


class TestRegistrationFeeValidator:
    @pytest.mark.asyncio
    async def test_matching_memo_passes(self):
        chain = FakeChain()
        chain.transfer(OPERATOR_EVM, MARKETPLACE_EVM_ADDRESS, 1, memo="other-reg")
        chain.transfer(OPERATOR_EVM, MARKETPLACE_EVM_ADDRESS, 1, memo="reg-1")

        validator = RegistrationFeeValidator(chain)
        assert await validator.validate(OPERATOR_EVM, "reg-1", 1_700_000_000) is True

    @pytest.mark.asyncio
    async def test_wrong_amount_is_ignored(self):
        chain = FakeChain()
        chain.transfer(OPERATOR_EVM, MARKETPLACE_EVM_ADDRESS, "0.5", memo="reg-1")

        validator = RegistrationFeeValidator(chain)
        assert await validator.validate(OPERATOR_EVM, "reg-1", None) is False

    @pytest.mark.asyncio
    async def test_no_transfers_fails(self):
        validator = RegistrationFeeValidator(FakeChain())
        assert await validator.validate(OPERATOR_EVM, "reg-1", None) is False


class TestFeeDistributionValidator:
    """Scenarios for the latest-payment redistribution check."""

    def _setup(self, n_images=None, responses=0, received=None, fee=Decimal("1")):
        ledger = FakeLedger()
        chain = FakeChain()

        tags = {"Unix_Time": "1700000000"}
        if n_images is not None:
            tags["N_Images"] = str(n_images)
        ledger.add(protocol_node("req-1", "user-arweave", OP_INFERENCE_REQUEST, **tags))
        for i in range(responses):
            ledger.add(
                protocol_node(
                    f"resp-{i}", OPERATOR_AR, OP_INFERENCE_RESPONSE, Request_Transaction="req-1"
                )
            )

        expected = fee * int(n_images or 1) if received is None else None
        paid = received if received is not None else expected
        chain.transfer(USER_EVM, OPERATOR_EVM, paid, memo="req-1")
        return ledger, chain, expected

    @pytest.mark.asyncio
    async def test_no_incoming_payment_is_vacuous_pass(self):
        ledger = FakeLedger()
        chain = FakeChain()
        validator = FeeDistributionValidator(ledger, chain)

        check = await validator.validate(OPERATOR_EVM, OPERATOR_AR, Decimal("1"), 1_700_000_000)

        assert check.verdict == DistributionVerdict.VALID
        assert check.is_valid
        assert chain.calls == ["get_transfer_logs_to"]
        assert ledger.queries == []

    @pytest.mark.asyncio
    async def test_payment_without_memo_is_vacuous_pass(self):
        ledger = FakeLedger()
        chain = FakeChain()
        chain.transfer(USER_EVM, OPERATOR_EVM, 1)
        validator = FeeDistributionValidator(ledger, chain)

        check = await validator.validate(OPERATOR_EVM, OPERATOR_AR, Decimal("1"), None)

        assert check.is_valid
        assert ledger.queries == []

    @pytest.mark.asyncio
    async def test_missing_request_raises_not_found(self):
        chain = FakeChain()
        chain.transfer(USER_EVM, OPERATOR_EVM, 1, memo="ghost-request")
        validator = FeeDistributionValidator(FakeLedger(), chain)

        with pytest.raises(NotFoundError) as exc_info:
            await validator.validate(OPERATOR_EVM, OPERATOR_AR, Decimal("1"), None)
        assert exc_info.value.tx_id == "ghost-request"

    @pytest.mark.asyncio
    async def test_full_distribution_is_valid(self):
        ledger, chain, expected = self._setup(n_images=3, responses=3)
        chain.transfer(OPERATOR_EVM, CURATOR_EVM, expected * Decimal("0.2"))
        chain.transfer(OPERATOR_EVM, MARKETPLACE_EVM_ADDRESS, expected * Decimal("0.1"))

        validator = FeeDistributionValidator(ledger, chain)
        check = await validator.validate(
            OPERATOR_EVM, OPERATOR_AR, Decimal("1"), 1_700_000_000, CURATOR_EVM
        )

        assert check.verdict == DistributionVerdict.VALID
        assert check.request_tx == "req-1"
        assert check.expected_fee == Decimal("3")

    @pytest.mark.asyncio
    async def test_incomplete_responses_are_invalid(self):
        ledger, chain, expected = self._setup(n_images=2, responses=1)
        chain.transfer(OPERATOR_EVM, MARKETPLACE_EVM_ADDRESS, expected * Decimal("0.1"))

        validator = FeeDistributionValidator(ledger, chain)
        check = await validator.validate(OPERATOR_EVM, OPERATOR_AR, Decimal("1"), None)

        assert check.verdict == DistributionVerdict.INVALID
        assert "1 of 2" in check.reason

    @pytest.mark.asyncio
    async def test_missing_curator_share_is_invalid(self):
        ledger, chain, expected = self._setup(responses=1)
        chain.transfer(OPERATOR_EVM, MARKETPLACE_EVM_ADDRESS, expected * Decimal("0.1"))

        validator = FeeDistributionValidator(ledger, chain)
        check = await validator.validate(
            OPERATOR_EVM, OPERATOR_AR, Decimal("1"), None, CURATOR_EVM
        )

        assert check.verdict == DistributionVerdict.INVALID
        assert "curator" in check.reason

    @pytest.mark.asyncio
    async def test_curator_check_skipped_without_curator(self):
        ledger, chain, expected = self._setup(responses=1)
        chain.transfer(OPERATOR_EVM, MARKETPLACE_EVM_ADDRESS, expected * Decimal("0.1"))

        validator = FeeDistributionValidator(ledger, chain)
        check = await validator.validate(OPERATOR_EVM, OPERATOR_AR, Decimal("1"), None)

        assert check.is_valid

    @pytest.mark.asyncio
    async def test_missing_marketplace_share_is_invalid(self):
        ledger, chain, expected = self._setup(responses=1)
        chain.transfer(OPERATOR_EVM, CURATOR_EVM, expected * Decimal("0.2"))

        validator = FeeDistributionValidator(ledger, chain)
        check = await validator.validate(
            OPERATOR_EVM, OPERATOR_AR, Decimal("1"), None, CURATOR_EVM
        )

        assert check.verdict == DistributionVerdict.INVALID
        assert "marketplace" in check.reason

    @pytest.mark.asyncio
    async def test_underpaid_operator_is_flagged_distinctly(self):
        ledger, chain, _ = self._setup(n_images=2, responses=0, received=Decimal("1"))

        validator = FeeDistributionValidator(ledger, chain)
        check = await validator.validate(OPERATOR_EVM, OPERATOR_AR, Decimal("1"), None)

        assert check.verdict == DistributionVerdict.UPSTREAM_UNDERPAID
        assert not check.is_valid
        assert check.expected_fee == Decimal("2")
        assert check.received_fee == Decimal("1")

        with pytest.raises(UpstreamUnderpaymentError) as exc_info:
            check.raise_for_underpayment()
        assert exc_info.value.shortfall == Decimal("1")

    @pytest.mark.asyncio
    async def test_raise_for_underpayment_is_noop_when_valid(self):
        validator = FeeDistributionValidator(FakeLedger(), FakeChain())
        check = await validator.validate(OPERATOR_EVM, OPERATOR_AR, Decimal("1"), None)
        check.raise_for_underpayment()

    @pytest.mark.asyncio
    async def test_integral_decimal_image_count_is_accepted(self):
        ledger, chain, _ = self._setup(n_images="2.0", responses=2, received=Decimal("2"))
        chain.transfer(OPERATOR_EVM, MARKETPLACE_EVM_ADDRESS, Decimal("0.2"))

        validator = FeeDistributionValidator(ledger, chain)
        check = await validator.validate(OPERATOR_EVM, OPERATOR_AR, Decimal("1"), None)

        assert check.verdict == DistributionVerdict.VALID
        assert check.expected_fee == Decimal("2")

    @pytest.mark.asyncio
    async def test_garbage_image_count_raises_validation_error(self):
        ledger, chain, _ = self._setup(n_images="lots", received=Decimal("1"))

        validator = FeeDistributionValidator(ledger, chain)
        with pytest.raises(ValidationError):
            await validator.validate(OPERATOR_EVM, OPERATOR_AR, Decimal("1"), None)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("n_images", [0, -1])
    async def test_non_positive_image_count_is_invalid(self, n_images):
        ledger, chain, _ = self._setup(n_images=n_images, received=Decimal("1"))

        validator = FeeDistributionValidator(ledger, chain)
        check = await validator.validate(OPERATOR_EVM, OPERATOR_AR, Decimal("1"), None)

        assert check.verdict == DistributionVerdict.INVALID
        assert check.request_tx == "req-1"
        # Only the request lookup; no response query is sent
        assert len(ledger.queries) == 1
        assert "get_decimals" not in chain.calls
