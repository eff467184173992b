"""Duplicate judge agent for lead and draft deduplication."""

import logging

from pydantic import BaseModel, Field

from app.agents.base_agent import BaseAgent

logger = logging.getLogger(__name__)


class DuplicateCandidate(BaseModel):
    """One item in the numbered list shown to the judge."""

    title: str
    snippet: str = ""


class DuplicateJudgeInput(BaseModel):
    """Input for duplicate judge agent."""

    items: list[DuplicateCandidate]
    item_kind: str = Field(default="news article titles", description="What the items are")


class DuplicateJudgeOutput(BaseModel):
    """Output from duplicate judge agent."""

    duplicate_indices: list[int] = Field(
        default_factory=list,
        description="1-based numbers of items to DELETE; the first occurrence of a story is kept",
    )


class DuplicateJudgeAgent(BaseAgent[DuplicateJudgeInput, DuplicateJudgeOutput]):
    """Agent that flags items reporting the same story.

    Sees the whole batch at once and returns which numbered items to delete,
    so one call covers the entire lead pool or draft set.
    """

    model_tier = "fast"
    temperature = 0.1

    @property
    def system_prompt(self) -> str:
        return """You are a professional news editor. Identify items that report essentially the same story.

Rules:
1. Compare every item with every other item
2. Items about the same event or story are duplicates, even with different wording
3. Different angles on the same story are still duplicates
4. Keep the first occurrence and return the numbers of the later ones to DELETE
5. If nothing is duplicated, return an empty list"""

    @property
    def output_type(self) -> type[DuplicateJudgeOutput]:
        return DuplicateJudgeOutput

    def _build_prompt(self, input_data: DuplicateJudgeInput) -> str:
        lines = []
        for number, item in enumerate(input_data.items, start=1):
            line = f'{number}. "{item.title}"'
            if item.snippet:
                line = f'{line}\n   Content: "{item.snippet}"'
            lines.append(line)
        items_text = "\n".join(lines)

        return f"""Below are {len(input_data.items)} {input_data.item_kind}.

{items_text}

Return the numbers of duplicate items to delete."""
