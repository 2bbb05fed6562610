"""Tests for the post event handler."""

from unittest.mock import AsyncMock

import pytest

from post_emitter.schemas.operations import JobEnvelope, PostSnapshot
from post_emitter.services.events import PostEventHandler
from post_emitter.services.translation import Translator


@pytest.fixture()
def receivers(registry):
    registry.add("A", "https://a.example.com", auth_token="tok-a")
    registry.add("B", "https://b.example.com", auth_token="tok-b")
    return registry


@pytest.fixture()
def events(receivers, queue) -> PostEventHandler:
    return PostEventHandler(receivers, queue)


def _only_job(queue):
    (job,) = queue.dequeue_batch()
    return job, JobEnvelope.model_validate_json(job.payload).operation


@pytest.mark.asyncio
async def test_publish_enqueues_send_for_selected_receivers(events, queue, post) -> None:
    assert await events.publish(post, [1])

    job, operation = _only_job(queue)
    assert job.action == "send"
    assert operation.post.title == post.title
    assert '"https://b.example.com"' in job.receivers
    assert "tok-b" not in job.receivers


@pytest.mark.asyncio
async def test_empty_selection_enqueues_nothing(events, queue, post, caplog) -> None:
    with caplog.at_level("INFO", logger="post_emitter.services.events"):
        assert await events.publish(post, []) is False
        assert events.deleted(post.post_id, []) is False

    assert queue.stats().total == 0
    assert "No receivers selected" in caplog.text


@pytest.mark.asyncio
async def test_unknown_indices_only_enqueue_nothing(events, queue, post) -> None:
    assert await events.publish(post, [5, 9]) is False
    assert queue.stats().total == 0


@pytest.mark.asyncio
async def test_entering_publish_sends(events, queue, post) -> None:
    draft = post.model_copy(update={"status": "draft"})

    assert await events.status_changed(draft, "publish", "draft", [0])

    job, operation = _only_job(queue)
    assert job.action == "send"
    assert operation.post.status == "publish"


@pytest.mark.asyncio
async def test_leaving_publish_updates_status(events, queue, post) -> None:
    assert await events.status_changed(post, "draft", "publish", [0, 1])

    job, operation = _only_job(queue)
    assert job.action == "update_status"
    assert operation.request_body() == {"ID": 42, "status": "draft"}


@pytest.mark.asyncio
async def test_other_transitions_are_ignored(events, queue, post) -> None:
    assert await events.status_changed(post, "draft", "pending", [0]) is False
    assert await events.status_changed(post, "publish", "publish", [0]) is False
    assert queue.stats().total == 0


def test_deleted_enqueues_delete(events, queue) -> None:
    assert events.deleted(42, [0])

    job, operation = _only_job(queue)
    assert job.action == "delete"
    assert operation.request_body() == {"ID": 42, "action": "delete"}


@pytest.mark.asyncio
async def test_publish_translates_text_fields(receivers, queue, post) -> None:
    translator = AsyncMock(spec=Translator)
    translator.translate.side_effect = (
        lambda text, source, target, context="default": f"{target}:{text}"
    )
    events = PostEventHandler(
        receivers, queue, translator, origin_language="pt_BR", target_language="en_US"
    )

    await events.publish(post, [0])

    _, operation = _only_job(queue)
    assert operation.post.title == f"en_US:{post.title}"
    assert operation.post.content == f"en_US:{post.content}"
    assert operation.post.excerpt == f"en_US:{post.excerpt}"
    contexts = [
        call.args[3] if len(call.args) > 3 else "default"
        for call in translator.translate.await_args_list
    ]
    assert contexts == ["title", "body", "default"]


@pytest.mark.asyncio
async def test_publish_skips_translation_for_same_language(receivers, queue, post) -> None:
    translator = AsyncMock(spec=Translator)
    events = PostEventHandler(
        receivers, queue, translator, origin_language="pt_BR", target_language="pt_BR"
    )

    await events.publish(post, [0])

    translator.translate.assert_not_awaited()
    _, operation = _only_job(queue)
    assert operation.post.model_dump() == post.model_dump()


def test_post_snapshot_round_trips_extra_fields() -> None:
    snapshot = PostSnapshot.model_validate({"ID": 3, "title": "T", "custom_meta": {"k": 1}})
    assert snapshot.model_dump(by_alias=True)["custom_meta"] == {"k": 1}
