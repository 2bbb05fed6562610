"""Entry points called by the content producer when posts change."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from post_emitter.schemas.operations import (
    DeleteOperation,
    Operation,
    PostSnapshot,
    SendOperation,
    UpdateStatusOperation,
)
from post_emitter.services.queue import ReplicationQueue
from post_emitter.services.receivers import ReceiverRegistry
from post_emitter.services.translation import Translator

logger = logging.getLogger(__name__)

STATUS_PUBLISH = "publish"


class PostEventHandler:
    """Turns post lifecycle events into queued replication jobs."""

    def __init__(
        self,
        registry: ReceiverRegistry,
        queue: ReplicationQueue,
        translator: Translator | None = None,
        *,
        origin_language: str = "pt_BR",
        target_language: str | None = None,
    ) -> None:
        self._registry = registry
        self._queue = queue
        self._translator = translator
        self._origin_language = origin_language
        self._target_language = target_language

    async def publish(self, post: PostSnapshot, receiver_indices: Sequence[int]) -> bool:
        """Queue a full send of ``post``, translated first when configured."""
        if not self._has_selection(post.post_id, receiver_indices, "send"):
            return False

        post = await self._translated(post)
        return self._enqueue(SendOperation(post=post), receiver_indices)

    async def status_changed(
        self,
        post: PostSnapshot,
        new_status: str,
        old_status: str | None,
        receiver_indices: Sequence[int],
    ) -> bool:
        """React to a status transition.

        Entering ``publish`` sends the post; leaving it propagates the new
        status. Any other transition is ignored.
        """
        if new_status == STATUS_PUBLISH and old_status != STATUS_PUBLISH:
            published = post.model_copy(update={"status": new_status})
            return await self.publish(published, receiver_indices)

        if old_status == STATUS_PUBLISH and new_status != STATUS_PUBLISH:
            if not self._has_selection(post.post_id, receiver_indices, "update_status"):
                return False
            return self._enqueue(
                UpdateStatusOperation(post_id=post.post_id, status=new_status), receiver_indices
            )

        logger.debug(
            "Ignoring status change %s -> %s for post %s", old_status, new_status, post.post_id
        )
        return False

    def deleted(self, post_id: int, receiver_indices: Sequence[int]) -> bool:
        if not self._has_selection(post_id, receiver_indices, "delete"):
            return False
        return self._enqueue(DeleteOperation(post_id=post_id), receiver_indices)

    def _has_selection(self, post_id: int, receiver_indices: Sequence[int], action: str) -> bool:
        if receiver_indices:
            return True
        logger.info(
            "No receivers selected for post %s; nothing to %s",
            post_id,
            action,
            extra={"context": {"post_id": post_id, "action": action}},
        )
        return False

    def _enqueue(self, operation: Operation, receiver_indices: Sequence[int]) -> bool:
        receivers = self._registry.snapshots(receiver_indices)
        if not receivers:
            logger.info(
                "Selected receivers for post %s are no longer available",
                operation.post_id,
                extra={"context": {"post_id": operation.post_id, "indices": list(receiver_indices)}},
            )
            return False
        return self._queue.enqueue(operation, receivers)

    async def _translated(self, post: PostSnapshot) -> PostSnapshot:
        if self._translator is None or not self._target_language:
            return post

        source = post.origin_language or self._origin_language
        target = self._target_language
        if source == target:
            return post

        return post.model_copy(
            update={
                "title": await self._translator.translate(post.title, source, target, "title"),
                "content": await self._translator.translate(post.content, source, target, "body"),
                "excerpt": await self._translator.translate(post.excerpt, source, target),
            }
        )
