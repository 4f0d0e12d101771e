from __future__ import annotations

from dataclasses import replace
from typing import Protocol

from creatorhub.models.billing import BillingEvent


class BillingEventRepo(Protocol):
    def get(self, event_id: str) -> BillingEvent | None: ...
    def record(self, event: BillingEvent) -> None: ...
    def mark_processed(self, event_id: str) -> None: ...
    def mark_failed(self, event_id: str, error: str) -> None: ...


class InMemoryBillingEventRepo:
    def __init__(self) -> None:
        self._store: dict[str, BillingEvent] = {}

    def get(self, event_id: str) -> BillingEvent | None:
        return self._store.get(event_id)

    def record(self, event: BillingEvent) -> None:
        # Upsert: a redelivered event that failed before is recorded again.
        self._store[event.event_id] = event

    def mark_processed(self, event_id: str) -> None:
        existing = self._store[event_id]
        self._store[event_id] = replace(
            existing, processed=True, processing_error=None
        )

    def mark_failed(self, event_id: str, error: str) -> None:
        existing = self._store[event_id]
        self._store[event_id] = replace(existing, processing_error=error)
