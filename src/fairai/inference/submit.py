"""
Inference request submission.

Picks an operator, publishes the request record on Arweave and pays the
operator in USDC with the request id as memo.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable

from fairai.context import MarketplaceContext
from fairai.core.constants import (
    DEFAULT_LICENSE_TAGS,
    MAX_N_IMAGES,
    OP_CONVERSATION_START,
    OP_INFERENCE_REQUEST,
    PROTOCOL_NAME,
    TAG_ASSET_NAMES,
    TAG_CONTENT_TYPE,
    TAG_CONVERSATION_ID,
    TAG_HEIGHT,
    TAG_N_IMAGES,
    TAG_OPERATION_NAME,
    TAG_PRIVATE_MODE,
    TAG_PROTOCOL_NAME,
    TAG_PROTOCOL_VERSION,
    TAG_SCRIPT_TX,
    TAG_TX_ORIGIN,
    TAG_UNIX_TIME,
    TAG_USER_PUBLIC_KEY,
    TAG_WIDTH,
    TX_ORIGIN_NODE,
)
from fairai.core.exceptions import (
    NoOperatorsAvailableError,
    NotFoundError,
    UploadError,
    ValidationError,
)
from fairai.core.logging import get_logger
from fairai.core.types import Tag
from fairai.ledger.filters import protocol_filters
from fairai.operators.resolution import OperatorResolver
from fairai.operators.types import OperatorCandidate
from fairai.operators.ranking import select_top
from fairai.upload.base import Payload, publish

logger = get_logger("inference.submit")

DEFAULT_CONVERSATION_ID = 1


@dataclass
class RequestConfig:
    """Optional generation settings attached to a request as tags."""

    n_images: int | None = None
    width: int | None = None
    height: int | None = None
    asset_names: list[str] = field(default_factory=list)
    private_mode: bool = False
    user_public_key: str | None = None

    def __post_init__(self) -> None:
        if self.n_images is not None and not 0 < self.n_images < MAX_N_IMAGES:
            raise ValidationError(
                f"n_images must be between 1 and {MAX_N_IMAGES - 1}",
                details={"n_images": self.n_images},
            )
        if self.private_mode and not self.user_public_key:
            raise ValidationError("private_mode requires user_public_key")

    def to_tags(self) -> list[Tag]:
        tags: list[Tag] = []
        if self.asset_names:
            tags.append(Tag(TAG_ASSET_NAMES, json.dumps(self.asset_names)))
        if self.width is not None:
            tags.append(Tag(TAG_WIDTH, str(self.width)))
        if self.height is not None:
            tags.append(Tag(TAG_HEIGHT, str(self.height)))
        if self.n_images is not None:
            tags.append(Tag(TAG_N_IMAGES, str(self.n_images)))
        if self.private_mode:
            tags.append(Tag(TAG_PRIVATE_MODE, "true"))
            tags.append(Tag(TAG_USER_PUBLIC_KEY, self.user_public_key))
        return tags


@dataclass(frozen=True)
class SubmissionResult:
    """Ids of the published request and of its USDC payment."""

    ledger_tx_id: str
    payment_tx_id: str
    operator: OperatorCandidate
    fee: Decimal
    conversation_id: int


class InferenceSubmitter:
    """
    Request Submission Orchestrator.

    Usage:
        submitter = InferenceSubmitter(context, resolver)
        result = await submitter.submit("a cat in a hat", solution_tx)
        print(result.ledger_tx_id, result.payment_tx_id)
    """

    def __init__(
        self,
        context: MarketplaceContext,
        resolver: OperatorResolver | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._context = context
        self._resolver = resolver or OperatorResolver(
            context.ledger,
            context.chain,
            protocol_version=context.config.protocol_version,
        )
        self._clock = clock

    def _base_tags(self, operation: str, solution_tx: str) -> list[Tag]:
        return [
            Tag(TAG_PROTOCOL_NAME, PROTOCOL_NAME),
            Tag(TAG_PROTOCOL_VERSION, self._context.config.protocol_version),
            Tag(TAG_OPERATION_NAME, operation),
            Tag(TAG_SCRIPT_TX, solution_tx),
        ]

    # ─── Conversations ───────────────────────────────────────────────

    async def latest_conversation_id(self, solution_tx: str, owner: str) -> int | None:
        """Identifier of `owner`'s newest Conversation Start for a solution."""
        page = await self._context.ledger.query(
            tags=protocol_filters(
                OP_CONVERSATION_START,
                self._context.config.protocol_version,
                Script_Transaction=solution_tx,
            ),
            owners=[owner],
            first=1,
        )
        if not page.nodes:
            return None

        raw = page.nodes[0].get_tag(TAG_CONVERSATION_ID)
        try:
            return int(raw) if raw is not None else None
        except ValueError:
            logger.warning(f"Ignoring malformed conversation id {raw!r} on {page.nodes[0].id}")
            return None

    async def start_conversation(self, solution_tx: str, conversation_id: int) -> str:
        """Publish a Conversation Start record and return its id."""
        tags = self._base_tags(OP_CONVERSATION_START, solution_tx)
        tags.append(Tag(TAG_UNIX_TIME, str(self._clock())))
        tags.append(Tag(TAG_CONVERSATION_ID, str(conversation_id)))

        tx_id = await publish(self._context.uploader, OP_CONVERSATION_START, tags)
        if not tx_id:
            raise UploadError("Could not publish conversation start")
        logger.info(f"Started conversation {conversation_id} for {solution_tx}: {tx_id}")
        return tx_id

    # ─── Requests ────────────────────────────────────────────────────

    async def submit(
        self,
        payload: Payload,
        solution_tx: str,
        operator: OperatorCandidate | None = None,
        conversation_id: int | None = None,
        config: RequestConfig | None = None,
        content_type: str | None = None,
    ) -> SubmissionResult:
        """
        Publish an inference request and pay its operator.

        Args:
            payload: Prompt text or file bytes (max 100 KiB)
            solution_tx: Solution (script) transaction id
            operator: Skip discovery and use this operator
            conversation_id: Defaults to the caller's latest conversation, or 1
            config: Optional generation settings
            content_type: Defaults to text/plain for str payloads and
                application/octet-stream for bytes

        Raises:
            CollaboratorUnavailableError: no payment sender or uploader configured
            NotFoundError: the solution does not exist
            NoOperatorsAvailableError: discovery found nobody
            UploadError: the request could not be published
        """
        payment = self._context.payment
        uploader = self._context.uploader
        ledger = self._context.ledger

        wallet = await payment.get_connected_address()

        if conversation_id is None:
            latest = await self.latest_conversation_id(solution_tx, wallet)
            conversation_id = latest if latest is not None else DEFAULT_CONVERSATION_ID

        solution = await ledger.find_by_id(solution_tx)
        if solution is None:
            raise NotFoundError(f"Solution {solution_tx} not found", tx_id=solution_tx)

        if operator is None:
            operator = select_top(await self._resolver.find_available_operators(solution))
            if operator is None:
                raise NoOperatorsAvailableError(
                    "No operators available", solution_tx=solution_tx
                )

        if content_type is None:
            content_type = "text/plain" if isinstance(payload, str) else "application/octet-stream"

        tags = self._base_tags(OP_INFERENCE_REQUEST, solution_tx)
        tags.append(Tag(TAG_CONVERSATION_ID, str(conversation_id)))
        tags.append(Tag(TAG_UNIX_TIME, str(self._clock())))
        tags.append(Tag(TAG_CONTENT_TYPE, content_type))
        tags.append(Tag(TAG_TX_ORIGIN, TX_ORIGIN_NODE))
        tags.extend(Tag(name, value) for name, value in DEFAULT_LICENSE_TAGS.items())
        if config is not None:
            tags.extend(config.to_tags())

        request_id = await publish(uploader, payload, tags)
        if not request_id:
            raise UploadError("Could not upload request to Arweave")

        n_images = config.n_images if config and config.n_images else 1
        fee = operator.operator_fee * n_images
        payment_tx = await payment.send_token(operator.evm_wallet, fee, request_id)

        logger.info(
            f"Submitted request {request_id} to operator {operator.arweave_wallet} "
            f"(fee {fee} USDC, payment {payment_tx})"
        )
        return SubmissionResult(
            ledger_tx_id=request_id,
            payment_tx_id=payment_tx,
            operator=operator,
            fee=fee,
            conversation_id=conversation_id,
        )
