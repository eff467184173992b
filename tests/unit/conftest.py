"""Shared fakes for workflow unit tests."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pytest

from app.agents.duplicate_judge import DuplicateJudgeInput, DuplicateJudgeOutput
from app.agents.journalist import JournalistInput, JournalistOutput
from app.agents.layout_editor import LayoutEditorInput, LayoutEditorOutput
from app.agents.sports_desk import SportsDeskInput, SportsDeskOutput
from app.integrations.newsdata import LeadCandidate
from app.models.documents import SportsBox
from app.persistence.document_store import DocumentStore
from app.services.progress_board import AgentProgressBoard
from app.services.queue_state import QueueStateStore


class FakePipeline:
    def __init__(self, redis: FakeRedis) -> None:
        self._redis = redis
        self._commands: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []

    def hset(self, *args: Any, **kwargs: Any) -> FakePipeline:
        self._commands.append(("hset", args, kwargs))
        return self

    def hdel(self, *args: Any, **kwargs: Any) -> FakePipeline:
        self._commands.append(("hdel", args, kwargs))
        return self

    async def execute(self) -> list[Any]:
        self._redis.pipelines_executed += 1
        results = []
        for name, args, kwargs in self._commands:
            results.append(await getattr(self._redis, name)(*args, **kwargs))
        self._commands.clear()
        return results


class FakeRedis:
    """In-memory stand-in for the hash commands the document store uses."""

    def __init__(self) -> None:
        self.hashes: dict[str, dict[str, str]] = {}
        self.pipelines_executed = 0
        self.closed = False

    async def hget(self, key: str, field: str) -> str | None:
        return self.hashes.get(key, {}).get(field)

    async def hmget(self, key: str, fields: Iterable[str]) -> list[str | None]:
        bucket = self.hashes.get(key, {})
        return [bucket.get(field) for field in fields]

    async def hset(
        self,
        key: str,
        field: str | None = None,
        value: str | None = None,
        mapping: dict[str, str] | None = None,
    ) -> int:
        bucket = self.hashes.setdefault(key, {})
        updates = dict(mapping or {})
        if field is not None:
            updates[field] = value  # type: ignore[assignment]
        added = sum(1 for name in updates if name not in bucket)
        bucket.update(updates)
        return added

    async def hsetnx(self, key: str, field: str, value: str) -> bool:
        bucket = self.hashes.setdefault(key, {})
        if field in bucket:
            return False
        bucket[field] = value
        return True

    async def hdel(self, key: str, *fields: str) -> int:
        bucket = self.hashes.get(key, {})
        removed = 0
        for field in fields:
            if bucket.pop(field, None) is not None:
                removed += 1
        if key in self.hashes and not bucket:
            del self.hashes[key]
        return removed

    async def hgetall(self, key: str) -> dict[str, str]:
        return dict(self.hashes.get(key, {}))

    async def hlen(self, key: str) -> int:
        return len(self.hashes.get(key, {}))

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.hashes.pop(key, None) is not None:
                removed += 1
        return removed

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    async def aclose(self) -> None:
        self.closed = True


class StubLeadSource:
    def __init__(self, candidates: list[LeadCandidate]) -> None:
        self.candidates = candidates
        self.calls: list[tuple[list[str], int]] = []

    async def fetch(self, topics: list[str], limit_per_topic: int) -> list[LeadCandidate]:
        self.calls.append((list(topics), limit_per_topic))
        return list(self.candidates)


class StubJudge:
    """Flags every item whose title is in ``duplicate_titles``."""

    def __init__(self, duplicate_titles: Iterable[str] = ()) -> None:
        self.duplicate_titles = set(duplicate_titles)
        self.calls: list[DuplicateJudgeInput] = []

    async def run(self, input_data: DuplicateJudgeInput) -> DuplicateJudgeOutput:
        self.calls.append(input_data)
        return DuplicateJudgeOutput(
            duplicate_indices=[
                number
                for number, item in enumerate(input_data.items, start=1)
                if item.title in self.duplicate_titles
            ]
        )


class StubWriter:
    """Writes a long enough article; titles in ``failing_titles`` raise."""

    def __init__(self, failing_titles: Iterable[str] = (), short_titles: Iterable[str] = ()) -> None:
        self.failing_titles = set(failing_titles)
        self.short_titles = set(short_titles)
        self.calls: list[JournalistInput] = []

    async def run(self, input_data: JournalistInput) -> JournalistOutput:
        self.calls.append(input_data)
        if input_data.title in self.failing_titles:
            raise RuntimeError("model returned garbage")
        summary = "Too short." if input_data.title in self.short_titles else (
            f"{input_data.content} " + "Reporting continues with verified detail. " * 3
        )
        return JournalistOutput(
            headline=f"Report: {input_data.title}",
            summary=summary,
            category=input_data.category,
            kicker=input_data.topic[:10],
        )


class StubLayout:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[LayoutEditorInput] = []

    async def run(self, input_data: LayoutEditorInput) -> LayoutEditorOutput:
        self.calls.append(input_data)
        if self.error is not None:
            raise self.error
        return LayoutEditorOutput(
            html=f"<html><body><h1>Edition {input_data.edition_number}</h1></body></html>"
        )


class StubSports:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.error = error

    async def run(self, input_data: SportsDeskInput) -> SportsDeskOutput:
        if self.error is not None:
            raise self.error
        return SportsDeskOutput(
            boxes=[SportsBox(sport="Football", title="Premier League", content="ARS 2-1 CHE")]
        )


def make_candidates(count: int, *, prefix: str = "Story") -> list[LeadCandidate]:
    return [
        LeadCandidate(
            topic="world",
            title=f"{prefix} {index}",
            url=f"https://news.example.com/{prefix.lower()}-{index}",
            content=f"Full source text for {prefix.lower()} number {index} with enough detail.",
            image_url=f"https://img.example.com/{index}.jpg",
        )
        for index in range(1, count + 1)
    ]


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def store(fake_redis: FakeRedis) -> DocumentStore:
    return DocumentStore(fake_redis, key_prefix="test")  # type: ignore[arg-type]


@pytest.fixture
def queue(store: DocumentStore) -> QueueStateStore:
    return QueueStateStore(store)


@pytest.fixture
def board(store: DocumentStore) -> AgentProgressBoard:
    return AgentProgressBoard(store)
