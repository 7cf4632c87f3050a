from typing import Any

from pydantic import BaseModel, field_validator


class WebhookEvent(BaseModel):
    """One settlement notification from the indexer; fields depend on event_type."""

    event_type: str
    order_hash: str | None = None
    maker: str | None = None
    fill_bps: str | None = None
    total_filled: str | None = None
    min_nonce: str | None = None

    @field_validator("order_hash", "maker", "fill_bps", "total_filled", "min_nonce", mode="before")
    @classmethod
    def accept_integers(cls, v: object) -> object:
        # The indexer may send small values as JSON numbers.
        return str(v) if isinstance(v, int) and not isinstance(v, bool) else v


class WebhookPayload(BaseModel):
    # Entries are validated one at a time so a malformed event only skips itself.
    events: list[Any]


class WebhookResponse(BaseModel):
    ok: bool
    processed: int
