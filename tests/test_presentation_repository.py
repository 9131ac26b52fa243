import pytest

from app.features.presentations.repository import (
    PresentationNotFoundError,
    PresentationRepository,
    presentation_pk,
    slide_sk,
    user_gsi_pk,
    user_gsi_sk,
)
from app.features.presentations.schemas import DEFAULT_THEME, PresentationMetadata

pytestmark = pytest.mark.anyio


def _metadata(pid="p1", user="a@x.com", **overrides):
    data = dict(
        id=pid,
        title="Q4 Review",
        description="desc",
        user_id=user,
        status="processing",
        theme=DEFAULT_THEME,
    )
    data.update(overrides)
    return PresentationMetadata(**data)


def _slides(n):
    return [{"type": "content", "title": f"Slide {i}", "background": "/images/background1.jpg"} for i in range(n)]


def test_key_construction():
    assert presentation_pk("abc") == "PRESENTATION#abc"
    assert slide_sk(7) == "SLIDE#007"
    assert slide_sk(999) == "SLIDE#999"
    assert user_gsi_pk("a@x.com") == "USER#a@x.com"
    assert user_gsi_sk("abc") == "PRESENTATION#abc"


@pytest.mark.parametrize("index", [-1, 1000])
def test_slide_key_rejects_out_of_range_index(index):
    with pytest.raises(ValueError):
        slide_sk(index)


async def test_metadata_record_carries_index_keys(fake_table, clock):
    await PresentationRepository.save_presentation_metadata(_metadata())

    item = fake_table.items[("PRESENTATION#p1", "METADATA")]
    assert item["gsi1pk"] == "USER#a@x.com"
    assert item["gsi1sk"] == "PRESENTATION#p1"
    assert item["userId"] == "a@x.com"
    assert item["createdAt"] == clock.now
    assert "errorMessage" not in item


async def test_get_presentation_returns_slides_in_index_order(fake_table, clock):
    slides = _slides(30)
    await PresentationRepository.save_presentation_metadata(_metadata())
    await PresentationRepository.save_slides("p1", slides)

    presentation = await PresentationRepository.get_presentation("p1")

    assert presentation is not None
    assert presentation.title == "Q4 Review"
    assert presentation.description == "desc"
    assert presentation.theme == DEFAULT_THEME
    assert presentation.slides == slides
    # 30 slides need two batches: 25 + 5
    assert [len(call) for call in fake_table.meta.client.batch_calls] == [25, 5]


async def test_get_presentation_follows_pagination(clock):
    from app.DB.dynamodb import reset_table, set_table
    from fakedynamo import FakeTable

    table = FakeTable(page_size=4)
    set_table(table)
    try:
        await PresentationRepository.save_presentation_metadata(_metadata())
        await PresentationRepository.save_slides("p1", _slides(10))
        presentation = await PresentationRepository.get_presentation("p1")
    finally:
        reset_table()

    assert [s["title"] for s in presentation.slides] == [f"Slide {i}" for i in range(10)]


async def test_float_values_survive_storage(fake_table, clock):
    slide = {"type": "metrics", "title": "KPIs", "metrics": [{"value": 2.5, "label": "growth"}, {"value": 10, "label": "deals"}]}
    await PresentationRepository.save_presentation_metadata(_metadata())
    await PresentationRepository.save_slides("p1", [slide])

    presentation = await PresentationRepository.get_presentation("p1")
    assert presentation.slides[0]["metrics"] == [{"value": 2.5, "label": "growth"}, {"value": 10, "label": "deals"}]


async def test_missing_presentation_is_none(fake_table):
    assert await PresentationRepository.get_presentation("nope") is None
    assert await PresentationRepository.get_presentation_metadata("nope") is None


async def test_save_metadata_twice_preserves_created_at(fake_table, clock):
    await PresentationRepository.save_presentation_metadata(_metadata())
    first = await PresentationRepository.get_presentation_metadata("p1")

    clock.tick(5000)
    await PresentationRepository.save_presentation_metadata(_metadata(title="Renamed"))
    second = await PresentationRepository.get_presentation_metadata("p1")

    assert second.created_at == first.created_at
    assert second.updated_at == first.updated_at + 5000
    assert second.title == "Renamed"


async def test_empty_slide_list_keeps_metadata(fake_table, clock):
    await PresentationRepository.save_presentation_metadata(_metadata())
    await PresentationRepository.save_slides("p1", [])

    presentation = await PresentationRepository.get_presentation("p1")
    assert presentation is not None
    assert presentation.slides == []


async def test_save_slides_retries_unprocessed_once(fake_table, clock):
    client = fake_table.meta.client
    client.unprocessed_plan = [3]

    await PresentationRepository.save_slides("p1", _slides(5))

    assert [len(call) for call in client.batch_calls] == [5, 3]
    assert len([k for k in fake_table.items if k[1].startswith("SLIDE#")]) == 5


async def test_save_slides_drops_writes_left_after_retry(fake_table, clock):
    client = fake_table.meta.client
    client.unprocessed_plan = [2, 2]

    await PresentationRepository.save_slides("p1", _slides(4))

    assert [len(call) for call in client.batch_calls] == [4, 2]
    assert len([k for k in fake_table.items if k[1].startswith("SLIDE#")]) == 2


async def test_save_slides_rejects_more_than_supported(fake_table):
    with pytest.raises(ValueError):
        await PresentationRepository.save_slides("p1", _slides(1001))
    assert fake_table.meta.client.batch_calls == []


async def test_save_slide_single_upsert(fake_table, clock):
    await PresentationRepository.save_slide("p1", 3, {"type": "quote", "quote": {"text": "hi"}})
    item = fake_table.items[("PRESENTATION#p1", "SLIDE#003")]
    assert item["slideIndex"] == 3
    assert item["updatedAt"] == clock.now


async def test_status_update_sets_error_and_keeps_it(fake_table, clock):
    await PresentationRepository.save_presentation_metadata(_metadata())

    clock.tick()
    await PresentationRepository.update_presentation_status("p1", "failed", "boom")
    failed = await PresentationRepository.get_presentation_metadata("p1")
    assert failed.status == "failed"
    assert failed.error_message == "boom"
    assert failed.updated_at == clock.now

    await PresentationRepository.update_presentation_status("p1", "completed")
    completed = await PresentationRepository.get_presentation_metadata("p1")
    assert completed.status == "completed"
    assert completed.error_message == "boom"


async def test_metadata_update_writes_only_given_fields(fake_table, clock):
    await PresentationRepository.save_presentation_metadata(_metadata())

    clock.tick(10)
    await PresentationRepository.update_presentation_metadata("p1", title="New title")
    updated = await PresentationRepository.get_presentation_metadata("p1")

    assert updated.title == "New title"
    assert updated.description == "desc"
    assert updated.theme == DEFAULT_THEME
    assert updated.updated_at == clock.now


async def test_user_presentations_newest_first_and_scoped(fake_table, clock):
    for pid, user in (("old", "a@x.com"), ("other", "b@x.com"), ("mid", "a@x.com"), ("new", "a@x.com")):
        clock.tick(1000)
        await PresentationRepository.save_presentation_metadata(_metadata(pid=pid, user=user))

    mine = await PresentationRepository.get_user_presentations("a@x.com")

    assert [m.id for m in mine] == ["new", "mid", "old"]
    assert all(m.user_id == "a@x.com" for m in mine)


async def test_delete_presentation_removes_everything(fake_table, clock):
    await PresentationRepository.save_presentation_metadata(_metadata())
    await PresentationRepository.save_slides("p1", _slides(30))

    await PresentationRepository.delete_presentation("p1")

    assert fake_table.items == {}
    assert await PresentationRepository.get_presentation("p1") is None
    assert await PresentationRepository.get_user_presentations("a@x.com") == []
    # Metadata goes in the last batch
    last_batch = fake_table.meta.client.batch_calls[-1]
    assert last_batch[-1]["DeleteRequest"]["Key"]["sk"] == "METADATA"


async def test_delete_unknown_presentation_is_noop(fake_table):
    await PresentationRepository.delete_presentation("missing")
    assert fake_table.meta.client.batch_calls == []


async def test_delete_presentation_surfaces_partial_failure(fake_table, clock):
    await PresentationRepository.save_presentation_metadata(_metadata())
    await PresentationRepository.save_slides("p1", _slides(2))
    fake_table.meta.client.unprocessed_plan = [1]

    with pytest.raises(RuntimeError):
        await PresentationRepository.delete_presentation("p1")

    # Metadata was last in the batch and is still there
    assert await PresentationRepository.get_presentation_metadata("p1") is not None


async def test_updates_never_create_a_partial_record(fake_table, clock):
    with pytest.raises(PresentationNotFoundError):
        await PresentationRepository.update_presentation_status("gone", "completed")
    with pytest.raises(PresentationNotFoundError):
        await PresentationRepository.update_presentation_metadata("gone", title="x")

    assert fake_table.items == {}
