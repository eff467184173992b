"""Unit tests for the content creation phase."""

from __future__ import annotations

import pytest
from conftest import StubJudge, StubSports, StubWriter

from app.models.documents import Draft, DraftStatus, Lead, SportsDataset
from app.models.workflow import WorkflowStep
from app.persistence.document_store import DRAFT_ARTICLES, SPORTS_BOXES, shard_collection
from app.services.phases.content_creation import SPORTS_DOC_ID, ContentCreationPhase
from app.services.phases.preparation import partition
from app.services.queue_state import STOP_SENTINEL


async def seed_shards(store, count: int, *, workers: int = 5) -> list[str]:
    titles = [f"Story {index}" for index in range(1, count + 1)]
    for worker_index, shard in enumerate(partition(titles, workers), start=1):
        for title in shard:
            lead = Lead(
                topic="world",
                title=title,
                content=f"Source text about {title.lower()} with plenty of detail.",
                url=f"https://news.example.com/{title.replace(' ', '-').lower()}",
                checked=True,
            )
            await store.set(shard_collection(worker_index), f"lead-{title.split()[-1]}", lead.to_document())
    return titles


def _phase(queue, store, board, *, writer=None, judge=None, sports=None) -> ContentCreationPhase:
    return ContentCreationPhase(
        queue=queue,
        store=store,
        board=board,
        writer=writer or StubWriter(),
        judge=judge or StubJudge(),
        sports_reporter=sports or StubSports(),
        journalist_count=5,
    )


async def _shards_empty(store) -> bool:
    counts = [await store.count(shard_collection(index)) for index in range(1, 6)]
    return sum(counts) == 0


@pytest.mark.asyncio
async def test_enough_validated_drafts_advances_to_editorial(queue, store, board) -> None:
    await seed_shards(store, 35)
    state = await queue.reset(WorkflowStep.PHASE2_CONTENT)

    result = await _phase(queue, store, board).run(state)

    assert result.success is True
    assert result.next_step == WorkflowStep.PHASE3_EDITOR
    assert await _shards_empty(store)
    validated = await store.list_models(DRAFT_ARTICLES, Draft, where={"status": DraftStatus.VALIDATED.value})
    assert len(validated) == 35
    assert {draft.category for draft in validated} == {"World"}

    stored = await queue.read()
    assert stored.current_step == WorkflowStep.PHASE3_EDITOR
    assert stored.valid_count == 35
    assert stored.drafts_made == 35


@pytest.mark.asyncio
async def test_admission_shortfall_schedules_another_attempt(queue, store, board) -> None:
    await seed_shards(store, 20)
    state = await queue.reset(WorkflowStep.PHASE2_CONTENT)

    result = await _phase(queue, store, board).run(state)

    assert result.success is True
    assert result.next_step == WorkflowStep.PHASE1_PREP
    stored = await queue.read()
    assert stored.current_step == WorkflowStep.PHASE1_PREP
    assert stored.attempt == 2
    assert stored.valid_count == 20


@pytest.mark.asyncio
async def test_final_attempt_shortfall_fails_the_run(queue, store, board) -> None:
    await seed_shards(store, 20)
    await queue.reset(WorkflowStep.PHASE2_CONTENT)
    state = await queue.write(attempt=3)

    result = await _phase(queue, store, board).run(state)

    assert result.success is False
    assert result.error == "Failed to get 35 validated articles after 3 attempts (got 20)"
    stored = await queue.read()
    assert stored.current_step == WorkflowStep.ERROR
    assert stored.error == result.error
    assert stored.valid_count == 20


@pytest.mark.asyncio
async def test_failed_lead_is_discarded_and_others_continue(queue, store, board) -> None:
    await seed_shards(store, 10)
    writer = StubWriter(failing_titles={"Story 1", "Story 6"})
    state = await queue.reset(WorkflowStep.PHASE2_CONTENT)

    result = await _phase(queue, store, board, writer=writer).run(state)

    assert result.success is True
    assert len(writer.calls) == 10
    assert await _shards_empty(store)
    headlines = {draft.headline for draft in await store.list_models(DRAFT_ARTICLES, Draft)}
    assert len(headlines) == 8
    assert "Report: Story 1" not in headlines


@pytest.mark.asyncio
async def test_lead_with_existing_draft_is_not_redrafted(queue, store, board) -> None:
    await seed_shards(store, 5)
    existing = Draft(lead_id="lead-1", headline="Report: Story 1", content="z" * 120)
    await store.set(DRAFT_ARTICLES, "existing", existing.to_document())
    writer = StubWriter()
    state = await queue.reset(WorkflowStep.PHASE2_CONTENT)

    await _phase(queue, store, board, writer=writer).run(state)

    assert "Story 1" not in [call.title for call in writer.calls]
    drafts = await store.list_models(DRAFT_ARTICLES, Draft)
    assert [draft.lead_id for draft in drafts].count("lead-1") == 1
    assert await _shards_empty(store)


@pytest.mark.asyncio
async def test_short_drafts_are_rejected(queue, store, board) -> None:
    await seed_shards(store, 6)
    writer = StubWriter(short_titles={"Story 2", "Story 4"})
    state = await queue.reset(WorkflowStep.PHASE2_CONTENT)

    await _phase(queue, store, board, writer=writer).run(state)

    drafts = await store.list_models(DRAFT_ARTICLES, Draft)
    assert len(drafts) == 4
    assert all(draft.status == DraftStatus.VALIDATED for draft in drafts)
    assert (await queue.read()).valid_count == 4


@pytest.mark.asyncio
async def test_duplicate_drafts_are_removed(queue, store, board) -> None:
    await seed_shards(store, 10)
    judge = StubJudge(duplicate_titles={"Report: Story 10"})
    state = await queue.reset(WorkflowStep.PHASE2_CONTENT)

    await _phase(queue, store, board, judge=judge).run(state)

    headlines = {draft.headline for draft in await store.list_models(DRAFT_ARTICLES, Draft)}
    assert len(headlines) == 9
    assert "Report: Story 10" not in headlines
    assert judge.calls[0].items[0].snippet


@pytest.mark.asyncio
async def test_sports_failure_stores_empty_dataset(queue, store, board) -> None:
    await seed_shards(store, 35)
    sports = StubSports(error=RuntimeError("search down"))
    state = await queue.reset(WorkflowStep.PHASE2_CONTENT)

    result = await _phase(queue, store, board, sports=sports).run(state)

    assert result.success is True
    dataset = await store.get_model(SPORTS_BOXES, SPORTS_DOC_ID, SportsDataset)
    assert dataset is not None
    assert dataset.boxes == []


@pytest.mark.asyncio
async def test_sports_boxes_are_stored(queue, store, board) -> None:
    await seed_shards(store, 5)
    state = await queue.reset(WorkflowStep.PHASE2_CONTENT)

    await _phase(queue, store, board).run(state)

    dataset = await store.get_model(SPORTS_BOXES, SPORTS_DOC_ID, SportsDataset)
    assert [box.sport for box in dataset.boxes] == ["Football"]


@pytest.mark.asyncio
async def test_stop_mid_phase_aborts_without_overwriting_sentinel(queue, store, board) -> None:
    await seed_shards(store, 10)
    state = await queue.reset(WorkflowStep.PHASE2_CONTENT)

    class StoppingWriter(StubWriter):
        async def run(self, input_data):
            output = await super().run(input_data)
            if len(self.calls) == 3:
                await queue.write(current_step=WorkflowStep.ERROR, error=STOP_SENTINEL)
            return output

    writer = StoppingWriter()
    result = await _phase(queue, store, board, writer=writer).run(state)

    assert result.success is False
    assert result.error == STOP_SENTINEL
    assert len(writer.calls) == 3
    stored = await queue.read()
    assert stored.current_step == WorkflowStep.ERROR
    assert stored.error == STOP_SENTINEL
    assert await store.count(DRAFT_ARTICLES) < 10
