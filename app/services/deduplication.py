"""Batch duplicate detection over leads and drafts."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from app.agents.duplicate_judge import DuplicateCandidate, DuplicateJudgeInput
from app.services.phases.contracts import DuplicateJudge

logger = logging.getLogger(__name__)

DRAFT_SNIPPET_LENGTH = 200


async def find_duplicate_positions(
    judge: DuplicateJudge,
    items: Sequence[DuplicateCandidate],
    *,
    item_kind: str,
) -> list[int]:
    """Return 0-based positions of items to delete.

    The judge answers with 1-based numbers. Out-of-range and repeated numbers
    are ignored, and the first item can never be deleted since a duplicate
    always has an earlier occurrence.
    """
    if len(items) <= 1:
        return []

    output = await judge.run(DuplicateJudgeInput(items=list(items), item_kind=item_kind))

    positions: set[int] = set()
    ignored: list[int] = []
    for number in output.duplicate_indices:
        if 2 <= number <= len(items):
            positions.add(number - 1)
        else:
            ignored.append(number)

    if ignored:
        logger.warning(
            "Ignoring out-of-range duplicate numbers",
            extra={"item_kind": item_kind, "ignored": ignored, "item_count": len(items)},
        )
    logger.info(
        "Duplicates identified",
        extra={"item_kind": item_kind, "item_count": len(items), "duplicates": len(positions)},
    )
    return sorted(positions)


def lead_candidate(title: str) -> DuplicateCandidate:
    return DuplicateCandidate(title=title)


def draft_candidate(headline: str, content: str) -> DuplicateCandidate:
    snippet = content
    if len(content) > DRAFT_SNIPPET_LENGTH:
        snippet = content[:DRAFT_SNIPPET_LENGTH] + "..."
    return DuplicateCandidate(title=headline, snippet=snippet)
