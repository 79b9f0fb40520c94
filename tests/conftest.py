"""Shared fakes for the search core tests."""

import asyncio
from typing import List, Optional, Sequence

import pytest

from foodshare_search.models import (
    ChannelKind,
    SearchOutcome,
    SearchResultItem,
    TranscriptionEvent,
)


class FakeSpeechService:
    """Scripted speech recognizer.

    Emits the given events, then optionally raises an error or hangs until
    cancelled. Counts audio releases so tests can check exactly-once release.
    """

    def __init__(
        self,
        events: Sequence[TranscriptionEvent] = (),
        granted: bool = True,
        available: bool = True,
        hang: bool = False,
        error: Optional[Exception] = None,
        permission_gate: Optional[asyncio.Event] = None
    ):
        self.events = list(events)
        self.granted = granted
        self.available = available
        self.hang = hang
        self.error = error
        self.permission_gate = permission_gate
        self.start_calls = 0
        self.stop_calls = 0
        self.closed_streams = 0

    def is_available(self) -> bool:
        return self.available

    async def request_permission(self) -> bool:
        if self.permission_gate is not None:
            await self.permission_gate.wait()
        await asyncio.sleep(0)
        return self.granted

    def start_recognition(self):
        self.start_calls += 1
        return self._stream()

    async def _stream(self):
        try:
            for event in self.events:
                await asyncio.sleep(0)
                yield event
            if self.error is not None:
                raise self.error
            if self.hang:
                await asyncio.Event().wait()
        finally:
            self.closed_streams += 1

    def stop_recognition(self) -> None:
        self.stop_calls += 1


def make_item(item_id: int, distance_meters: Optional[float] = None) -> SearchResultItem:
    return SearchResultItem(
        id=item_id,
        title=f"Item {item_id}",
        description=None,
        latitude=51.5,
        longitude=-0.12,
        distance_meters=distance_meters,
    )


def make_outcome(
    ids: List[int],
    total_count: Optional[int] = None,
    has_more: bool = False,
    source: ChannelKind = ChannelKind.PRIMARY
) -> SearchOutcome:
    items = [make_item(i) for i in ids]
    return SearchOutcome(
        items=items,
        total_count=total_count if total_count is not None else len(items),
        category_breakdown={},
        has_more=has_more,
        source=source,
    )


@pytest.fixture
def speech_service_factory():
    return FakeSpeechService


@pytest.fixture
def outcome_factory():
    return make_outcome
