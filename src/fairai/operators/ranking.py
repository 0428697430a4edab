"""
Stamp-based ranking of operator candidates.

Stamps are third-party endorsement records (``Protocol-Name: Stamp``)
whose ``Data-Source`` tag points at the stamped transaction. Candidates are
ordered by how many stamps their registration has received.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from fairai.core.constants import (
    STAMP_PROTOCOL_NAME,
    TAG_DATA_SOURCE,
    TAG_PROTOCOL_NAME,
)
from fairai.core.types import TagFilter
from fairai.ledger.query import LedgerQueryClient
from fairai.operators.types import OperatorCandidate


async def count_stamps(
    ledger: LedgerQueryClient,
    tx_ids: Iterable[str],
) -> dict[str, int] | None:
    """
    Count stamps per stamped transaction.

    Returns:
        Mapping of tx id to stamp count, or None when nothing is stamped
    """
    tx_ids = list(tx_ids)
    if not tx_ids:
        return None

    nodes = await ledger.find(
        tags=[
            TagFilter.of(TAG_PROTOCOL_NAME, STAMP_PROTOCOL_NAME),
            TagFilter(name=TAG_DATA_SOURCE, values=tuple(tx_ids)),
        ],
    )
    if not nodes:
        return None

    counts = Counter(
        source for source in (node.get_tag(TAG_DATA_SOURCE) for node in nodes) if source
    )
    return dict(counts)


def rank_by_stamps(
    candidates: list[OperatorCandidate],
    stamp_counts: dict[str, int] | None,
) -> list[OperatorCandidate]:
    """
    Order candidates by ascending stamp count.

    The least-stamped operator comes first. Ties keep their input order and
    unstamped candidates count as zero.
    """
    # TODO: confirm with product whether the most-stamped operator should lead
    if not stamp_counts:
        return list(candidates)
    return sorted(candidates, key=lambda c: stamp_counts.get(c.tx_id, 0))


def select_top(candidates: list[OperatorCandidate]) -> OperatorCandidate | None:
    """First candidate in ranked order, if any."""
    return candidates[0] if candidates else None
