"""Collaborator ports the phase executors depend on."""

from typing import Protocol

from app.agents.duplicate_judge import DuplicateJudgeInput, DuplicateJudgeOutput
from app.agents.journalist import JournalistInput, JournalistOutput
from app.agents.layout_editor import LayoutEditorInput, LayoutEditorOutput
from app.agents.sports_desk import SportsDeskInput, SportsDeskOutput
from app.integrations.newsdata import LeadCandidate


class LeadSource(Protocol):
    async def fetch(self, topics: list[str], limit_per_topic: int) -> list[LeadCandidate]: ...


class DuplicateJudge(Protocol):
    async def run(self, input_data: DuplicateJudgeInput) -> DuplicateJudgeOutput: ...


class ArticleWriter(Protocol):
    async def run(self, input_data: JournalistInput) -> JournalistOutput: ...


class LayoutGenerator(Protocol):
    async def run(self, input_data: LayoutEditorInput) -> LayoutEditorOutput: ...


class SportsReporter(Protocol):
    async def run(self, input_data: SportsDeskInput) -> SportsDeskOutput: ...
