"""Replication operations and the versioned envelope stored on queued jobs."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

JOB_ENVELOPE_VERSION = 1


class PostSnapshot(BaseModel):
    """Post data as delivered to receivers.

    Unknown keys are kept so producers can ship extra fields without a schema
    change; they are forwarded to receivers untouched.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    post_id: int = Field(..., alias="ID", gt=0)
    title: str = ""
    content: str = ""
    excerpt: str = ""
    slug: str = ""
    status: str = "publish"
    categories: list[Any] = Field(default_factory=list)
    tags: list[Any] = Field(default_factory=list)
    origin_language: str | None = None
    author: str | None = None
    author_data: dict[str, Any] = Field(default_factory=dict)
    focus_keyword: str | None = None
    yoast_metadesc: str | None = None
    elementor: Any = None
    media: dict[str, Any] = Field(default_factory=dict)


class SendOperation(BaseModel):
    """Deliver a full post snapshot."""

    action: Literal["send"] = "send"
    post: PostSnapshot

    @property
    def post_id(self) -> int:
        return self.post.post_id

    def request_body(self) -> dict[str, Any]:
        return self.post.model_dump(by_alias=True, mode="json")


class UpdateStatusOperation(BaseModel):
    """Propagate a status change of an already delivered post."""

    action: Literal["update_status"] = "update_status"
    post_id: int = Field(..., gt=0)
    status: str = Field(..., min_length=1)

    def request_body(self) -> dict[str, Any]:
        return {"ID": self.post_id, "status": self.status}


class DeleteOperation(BaseModel):
    """Remove a post from receivers."""

    action: Literal["delete"] = "delete"
    post_id: int = Field(..., gt=0)

    def request_body(self) -> dict[str, Any]:
        return {"ID": self.post_id, "action": "delete"}


Operation = Annotated[
    SendOperation | UpdateStatusOperation | DeleteOperation,
    Field(discriminator="action"),
]


class JobEnvelope(BaseModel):
    """Serialized form of a queued operation.

    ``version`` is bumped whenever the stored shape changes so rows written
    by an older release can still be recognised.
    """

    version: Literal[1] = JOB_ENVELOPE_VERSION
    operation: Operation


class ReceiverSnapshot(BaseModel):
    """Receiver data copied onto a job at enqueue time.

    ``auth_token`` holds the vault ciphertext, exactly as stored.
    """

    id: int | None = None
    name: str = ""
    url: str
    auth_token: str = ""


receiver_snapshots_adapter: TypeAdapter[list[ReceiverSnapshot]] = TypeAdapter(
    list[ReceiverSnapshot]
)
