"""Tests for generator agent contracts."""

import logging

import pytest
from pydantic import ValidationError

from app.agents.duplicate_judge import DuplicateCandidate, DuplicateJudgeAgent, DuplicateJudgeInput
from app.agents.journalist import JournalistAgent, JournalistInput
from app.agents.layout_editor import (
    LayoutArticle,
    LayoutEditorAgent,
    LayoutEditorInput,
    LayoutEditorOutput,
)
from app.agents.sports_desk import SportsDeskAgent, SportsDeskInput
from app.config import settings
from app.core.exceptions import GeneratorOutputError
from app.models.documents import SportsBox


def test_duplicate_judge_prompt_numbers_items_from_one() -> None:
    agent = DuplicateJudgeAgent(model_override="test")
    prompt = agent._build_prompt(
        DuplicateJudgeInput(
            items=[
                DuplicateCandidate(title="Rates held"),
                DuplicateCandidate(title="Bank keeps rates", snippet="The central bank..."),
            ],
            item_kind="draft news articles",
        )
    )

    assert 'Below are 2 draft news articles.' in prompt
    assert '1. "Rates held"' in prompt
    assert '2. "Bank keeps rates"' in prompt
    assert 'Content: "The central bank..."' in prompt


def test_agents_resolve_models_by_tier() -> None:
    assert DuplicateJudgeAgent()._model == settings.get_model("fast")
    assert JournalistAgent()._model == settings.get_model("standard")
    assert LayoutEditorAgent()._model == settings.get_model("reasoning")
    assert JournalistAgent(model_override="test")._model == "test"


def test_journalist_prompt_carries_source_content() -> None:
    prompt = JournalistAgent(model_override="test")._build_prompt(
        JournalistInput(
            title="Port strike ends",
            topic="business",
            content="Dock workers returned on Monday after a deal.",
            url="https://news.example.com/strike",
            category="Business",
        )
    )

    assert "Port strike ends" in prompt
    assert "Dock workers returned on Monday" in prompt
    assert 'Use "Business" as the category' in prompt


def test_layout_prompt_lists_articles_and_sports() -> None:
    prompt = LayoutEditorAgent(model_override="test")._build_prompt(
        LayoutEditorInput(
            articles=[
                LayoutArticle(headline="Main story", content="Body one", image_url="https://img/1.jpg"),
                LayoutArticle(headline="Second story", content="Body two"),
            ],
            edition_number=12,
            publication_date="2026-01-05",
            sports_boxes=[SportsBox(sport="Cricket", title="Test match", content="IND 320/4")],
        )
    )

    assert "12" in prompt
    assert "Main story" in prompt
    assert "Second story" in prompt
    assert "IND 320/4" in prompt


def test_layout_requires_articles_and_html() -> None:
    with pytest.raises(ValidationError):
        LayoutEditorInput(articles=[], edition_number=1, publication_date="2026-01-05")
    with pytest.raises(ValidationError):
        LayoutEditorOutput(html="plain text")


def test_sports_desk_prompt_includes_date() -> None:
    prompt = SportsDeskAgent(model_override="test")._build_prompt(SportsDeskInput(date="2026-01-05"))

    assert "2026-01-05" in prompt


@pytest.mark.asyncio
async def test_journalist_runs_against_test_model(caplog) -> None:
    with caplog.at_level(logging.INFO, logger="app.agents.base_agent"):
        output = await JournalistAgent(model_override="test").run(
            JournalistInput(title="t", topic="world", content="c", url="https://x")
        )

    assert isinstance(output.headline, str)
    assert isinstance(output.summary, str)
    completed = [record for record in caplog.records if record.getMessage() == "Agent run completed"]
    assert len(completed) == 1
    assert completed[0].total_tokens > 0
    assert completed[0].agent == "JournalistAgent"


@pytest.mark.asyncio
async def test_unusable_layout_output_raises_generator_error() -> None:
    agent = LayoutEditorAgent(model_override="test")
    agent.max_retries = 1

    with pytest.raises(GeneratorOutputError, match="LayoutEditorAgent returned unusable output"):
        await agent.run(
            LayoutEditorInput(
                articles=[LayoutArticle(headline="Main story", content="Body")],
                edition_number=1,
                publication_date="2026-01-05",
            )
        )
