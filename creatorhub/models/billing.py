from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BillingEvent:
    """A billing-processor webhook event, recorded by its processor id.

    Recording before handling is what makes redelivery safe: an event whose
    ``processed`` flag is set is acknowledged without being applied again.
    """

    event_id: str
    type: str
    received_at: int
    processed: bool = False
    processing_error: str | None = None
