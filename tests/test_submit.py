"""Tests for inference request submission."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import FakeChain, FakeLedger, make_node, protocol_node
from fairai.context import MarketplaceContext
from fairai.core.config import Config
from fairai.core.constants import MAX_UPLOAD_BYTES, OP_CONVERSATION_START, OP_INFERENCE_REQUEST
from fairai.core.exceptions import (
    CollaboratorUnavailableError,
    NoOperatorsAvailableError,
    NotFoundError,
    UploadError,
    ValidationError,
)
from fairai.inference.submit import InferenceSubmitter, RequestConfig
from fairai.operators.types import OperatorCandidate, RegistrationRecord
from fairai.payment.base import PaymentSender
from fairai.upload.base import Uploader

SOLUTION = "sol-1"
USER = "0xUser"


class RecordingUploader(Uploader):
    def __init__(self, tx_id: str | None = "req-new", fail: bool = False) -> None:
        self.tx_id = tx_id
        self.fail = fail
        self.uploads: list[tuple[bytes, list]] = []

    async def upload(self, data, tags):
        if self.fail:
            raise UploadError("relay down")
        self.uploads.append((data, tags))
        return self.tx_id

    def tags(self, index: int = -1) -> dict[str, str]:
        return {t.name: t.value for t in self.uploads[index][1]}


def operator(fee: str = "0.5") -> OperatorCandidate:
    registration = RegistrationRecord(
        tx_id="reg-1", operator_address="op-arweave", solution_tx=SOLUTION, operator_fee=Decimal(fee)
    )
    return OperatorCandidate(
        registration=registration,
        evm_wallet="0x" + "a" * 40,
        arweave_wallet="op-arweave",
        operator_fee=Decimal(fee),
    )


@pytest.fixture
def payment():
    sender = AsyncMock(spec=PaymentSender)
    sender.get_connected_address.return_value = USER
    sender.send_token.return_value = "0xpayment"
    return sender


@pytest.fixture
def uploader():
    return RecordingUploader()


@pytest.fixture
def market_ledger():
    return FakeLedger([make_node(SOLUTION, "curator", Operation_Name="Script Upload")])


@pytest.fixture
def resolver():
    mock = MagicMock()
    mock.find_available_operators = AsyncMock(return_value=[operator()])
    return mock


@pytest.fixture
def submitter(market_ledger, payment, uploader, resolver):
    context = MarketplaceContext(
        Config(), ledger=market_ledger, chain=FakeChain(), payment=payment, uploader=uploader
    )
    return InferenceSubmitter(context, resolver, clock=lambda: 1_700_000_000)


class TestRequestConfig:
    @pytest.mark.parametrize("n_images", [0, 10, -1])
    def test_n_images_out_of_range(self, n_images):
        with pytest.raises(ValidationError):
            RequestConfig(n_images=n_images)

    def test_private_mode_requires_key(self):
        with pytest.raises(ValidationError):
            RequestConfig(private_mode=True)

    def test_to_tags(self):
        config = RequestConfig(
            n_images=4,
            width=512,
            height=768,
            asset_names=["cat", "hat"],
            private_mode=True,
            user_public_key="pk",
        )
        tags = {t.name: t.value for t in config.to_tags()}

        assert tags == {
            "N-Images": "4",
            "Width": "512",
            "Height": "768",
            "Asset-Names": '["cat", "hat"]',
            "Private-Mode": "true",
            "User-Public-Key": "pk",
        }

    def test_empty_config_has_no_tags(self):
        assert RequestConfig().to_tags() == []


class TestSubmit:
    @pytest.mark.asyncio
    async def test_publishes_and_pays_top_operator(self, submitter, payment, uploader):
        result = await submitter.submit("a cat in a hat", SOLUTION)

        assert result.ledger_tx_id == "req-new"
        assert result.payment_tx_id == "0xpayment"
        assert result.conversation_id == 1
        payment.send_token.assert_awaited_once_with("0x" + "a" * 40, Decimal("0.5"), "req-new")

        data, _ = uploader.uploads[0]
        assert data == b"a cat in a hat"
        tags = uploader.tags()
        assert tags["Protocol-Name"] == "FairAI"
        assert tags["Operation-Name"] == OP_INFERENCE_REQUEST
        assert tags["Script-Transaction"] == SOLUTION
        assert tags["Conversation-Identifier"] == "1"
        assert tags["Unix-Time"] == "1700000000"
        assert tags["Content-Type"] == "text/plain"
        assert tags["Transaction-Origin"] == "FairAI Node"
        assert tags["Commercial-Use"] == "Allowed"

    @pytest.mark.asyncio
    async def test_fee_scales_with_image_count(self, submitter, payment):
        result = await submitter.submit(
            "draw", SOLUTION, operator=operator("0.5"), config=RequestConfig(n_images=3)
        )

        assert result.fee == Decimal("1.5")
        payment.send_token.assert_awaited_once_with("0x" + "a" * 40, Decimal("1.5"), "req-new")

    @pytest.mark.asyncio
    async def test_operator_override_skips_discovery(self, submitter, resolver):
        await submitter.submit("hi", SOLUTION, operator=operator())
        resolver.find_available_operators.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reuses_latest_conversation(self, submitter, market_ledger, uploader):
        market_ledger.add(
            protocol_node(
                "conv-old", USER, OP_CONVERSATION_START,
                Script_Transaction=SOLUTION, Conversation_Identifier="2",
            ),
            protocol_node(
                "conv-new", USER, OP_CONVERSATION_START,
                Script_Transaction=SOLUTION, Conversation_Identifier="7",
            ),
            protocol_node(
                "conv-other-user", "0xSomeoneElse", OP_CONVERSATION_START,
                Script_Transaction=SOLUTION, Conversation_Identifier="9",
            ),
        )

        result = await submitter.submit("hi", SOLUTION)

        assert result.conversation_id == 7
        assert uploader.tags()["Conversation-Identifier"] == "7"

    @pytest.mark.asyncio
    async def test_bytes_payload_content_type(self, submitter, uploader):
        await submitter.submit(b"\x89PNG", SOLUTION, content_type="image/png")
        assert uploader.tags()["Content-Type"] == "image/png"

        await submitter.submit(b"\x00\x01", SOLUTION)
        assert uploader.tags()["Content-Type"] == "application/octet-stream"

    @pytest.mark.asyncio
    async def test_missing_solution_raises(self, submitter, uploader, payment):
        with pytest.raises(NotFoundError):
            await submitter.submit("hi", "missing")
        assert uploader.uploads == []
        payment.send_token.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_operators_raises(self, submitter, resolver, payment):
        resolver.find_available_operators.return_value = []

        with pytest.raises(NoOperatorsAvailableError):
            await submitter.submit("hi", SOLUTION)
        payment.send_token.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_upload_raises_before_payment(self, submitter, uploader, payment):
        uploader.fail = True

        with pytest.raises(UploadError):
            await submitter.submit("hi", SOLUTION)
        payment.send_token.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_oversized_payload_is_rejected(self, submitter, uploader, payment):
        with pytest.raises(UploadError):
            await submitter.submit(b"x" * (MAX_UPLOAD_BYTES + 1), SOLUTION)
        assert uploader.uploads == []
        payment.send_token.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unconfigured_payment_fails_before_network(self, market_ledger, uploader, resolver):
        context = MarketplaceContext(Config(), ledger=market_ledger, uploader=uploader)
        submitter = InferenceSubmitter(context, resolver)

        with pytest.raises(CollaboratorUnavailableError) as exc_info:
            await submitter.submit("hi", SOLUTION)
        assert exc_info.value.collaborator == "payment"
        assert market_ledger.queries == []


class TestConversations:
    @pytest.mark.asyncio
    async def test_start_conversation(self, submitter, uploader):
        tx_id = await submitter.start_conversation(SOLUTION, 3)

        assert tx_id == "req-new"
        tags = uploader.tags()
        assert tags["Operation-Name"] == OP_CONVERSATION_START
        assert tags["Conversation-Identifier"] == "3"
        assert tags["Script-Transaction"] == SOLUTION

    @pytest.mark.asyncio
    async def test_latest_conversation_none(self, submitter):
        assert await submitter.latest_conversation_id(SOLUTION, USER) is None
