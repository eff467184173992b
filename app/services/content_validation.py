"""Quality gate for drafted articles."""

from app.config import settings
from app.models.documents import Draft


def draft_rejection_reason(
    draft: Draft,
    *,
    min_body_length: int | None = None,
    failure_markers: list[str] | None = None,
) -> str | None:
    """Return why a draft fails the gate, or None when it is publishable."""
    min_length = settings.min_article_body_length if min_body_length is None else min_body_length
    markers = settings.generation_failure_markers if failure_markers is None else failure_markers

    headline = draft.headline.strip()
    if not headline:
        return "missing headline"
    if len(draft.content.strip()) <= min_length:
        return "content too short"

    text = f"{headline}\n{draft.content}".lower()
    for marker in markers:
        if marker.lower() in text:
            return f"generation failure marker: {marker}"
    return None
