"""Layout editor agent for composing a full edition."""

import logging

from pydantic import BaseModel, Field, field_validator

from app.agents.base_agent import BaseAgent
from app.models.documents import SportsBox

logger = logging.getLogger(__name__)


class LayoutArticle(BaseModel):
    """Article as handed to the layout editor."""

    headline: str
    content: str
    image_url: str | None = None
    category: str | None = None
    kicker: str | None = None


class LayoutEditorInput(BaseModel):
    """Input for layout editor agent."""

    articles: list[LayoutArticle] = Field(min_length=1)
    edition_number: int = Field(ge=1)
    publication_date: str
    sports_boxes: list[SportsBox] = Field(default_factory=list)


class LayoutEditorOutput(BaseModel):
    """Output from layout editor agent."""

    html: str = Field(description="Complete HTML document for the edition")

    @field_validator("html")
    @classmethod
    def _require_html(cls, value: str) -> str:
        if "<" not in value or not value.strip():
            raise ValueError("layout must be an HTML document")
        return value


class LayoutEditorAgent(BaseAgent[LayoutEditorInput, LayoutEditorOutput]):
    """Agent that lays out every validated article as one HTML edition.

    This is the single long call of the editorial phase.
    """

    model_tier = "reasoning"
    temperature = 0.5

    @property
    def system_prompt(self) -> str:
        return """You are the layout editor of "The Daily Agent", a modern, colorful daily newspaper.

Produce one complete, self-contained HTML document:
1. A front page led by the first article, with its image when one is given
2. Inner pages grouped by category, skipping categories that have no articles
3. Three to six articles per page; never cram every article onto a few pages
4. Sports data boxes placed on the sports page as compact side boxes
5. The masthead shows the newspaper name, edition number and date
6. Use every article exactly once and keep each article's text intact"""

    @property
    def output_type(self) -> type[LayoutEditorOutput]:
        return LayoutEditorOutput

    def _build_prompt(self, input_data: LayoutEditorInput) -> str:
        articles_text = "\n\n".join(
            f"""Article {number}:
Headline: {article.headline}
Category: {article.category or "General"}
Kicker: {article.kicker or ""}
Image: {article.image_url or "none"}
Content:
{article.content}"""
            for number, article in enumerate(input_data.articles, start=1)
        )

        sports_text = "No sports boxes today."
        if input_data.sports_boxes:
            sports_text = "\n".join(
                f"- [{box.sport} / {box.type}] {box.title}: {box.content}"
                for box in input_data.sports_boxes
            )

        minimum_pages = max(2, -(-len(input_data.articles) // 6))
        return f"""Edition number: {input_data.edition_number}
Date: {input_data.publication_date}
Articles: {len(input_data.articles)} (create at least {minimum_pages} pages)

{articles_text}

Sports boxes:
{sports_text}"""
