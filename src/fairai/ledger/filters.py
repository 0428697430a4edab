"""Tag filter builders for FairAI protocol records."""

from __future__ import annotations

from fairai.core.constants import (
    PROTOCOL_NAME,
    PROTOCOL_VERSION,
    TAG_OPERATION_NAME,
    TAG_PROTOCOL_NAME,
    TAG_PROTOCOL_VERSION,
)
from fairai.core.types import TagFilter


def protocol_filters(
    operation: str | None = None,
    version: str = PROTOCOL_VERSION,
    **extra: str | list[str] | tuple[str, ...],
) -> list[TagFilter]:
    """
    Build the protocol name/version filters plus an optional operation.

    Extra keyword filters use underscores for dashes, e.g.
    ``Script_Transaction="abc"`` filters on ``Script-Transaction``.

    Example:
        >>> protocol_filters("Operator Registration", Script_Transaction="tx1")
    """
    filters = [
        TagFilter.of(TAG_PROTOCOL_NAME, PROTOCOL_NAME),
        TagFilter.of(TAG_PROTOCOL_VERSION, version),
    ]
    if operation:
        filters.append(TagFilter.of(TAG_OPERATION_NAME, operation))
    for key, value in extra.items():
        values = (value,) if isinstance(value, str) else tuple(value)
        filters.append(TagFilter(name=key.replace("_", "-"), values=values))
    return filters
