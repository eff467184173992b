"""Journalist agent that turns one lead into a draft article."""

import logging

from pydantic import BaseModel, Field

from app.agents.base_agent import BaseAgent

logger = logging.getLogger(__name__)


class JournalistInput(BaseModel):
    """Input for journalist agent."""

    title: str
    topic: str
    content: str
    url: str = ""
    category: str = Field(default="National", description="Newspaper section for the story")


class JournalistOutput(BaseModel):
    """Output from journalist agent."""

    headline: str = Field(description="Compelling newspaper-style headline")
    summary: str = Field(description="Detailed 300-350 word report in paragraphs")
    category: str = Field(description="Newspaper section category")
    kicker: str = Field(description="Short 1-2 word category label")


class JournalistAgent(BaseAgent[JournalistInput, JournalistOutput]):
    """Agent for rewriting a raw lead into an objective news report."""

    model_tier = "standard"
    temperature = 0.6

    @property
    def system_prompt(self) -> str:
        return """You are an expert journalist. Rewrite the provided article content into a detailed and objective news report.

Instructions:
1. Write a report of approximately 300-350 words based ONLY on the article content provided
2. Create a compelling, newspaper-style headline
3. Include quotes, statistics, or expert opinions if they appear in the source
4. Keep a neutral, objective, factual tone
5. Structure the report in paragraphs
6. Do not invent facts or use outside sources"""

    @property
    def output_type(self) -> type[JournalistOutput]:
        return JournalistOutput

    def _build_prompt(self, input_data: JournalistInput) -> str:
        return f"""Article data:
- Original title: {input_data.title}
- Topic: {input_data.topic}
- Category: {input_data.category}
- Article content:
{input_data.content}

Write the report. Use "{input_data.category}" as the category unless the content clearly belongs elsewhere."""
