"""Outcome of delivering one operation to one receiver."""

from typing import Literal

from pydantic import BaseModel

DELIVERY_OK = "ok"
DELIVERY_FAIL = "fail"


class DeliveryResult(BaseModel):
    """Result of one delivery attempt sequence against a receiver."""

    receiver_url: str
    status: Literal["ok", "fail"]
    message: str
    response_code: int | None = None

    @property
    def ok(self) -> bool:
        return self.status == DELIVERY_OK
