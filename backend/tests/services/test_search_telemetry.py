"""
Tests for SearchTelemetryRecorder.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.services.search.telemetry import SearchEvent, SearchTelemetryRecorder


class FakeSession:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None


def make_event(**overrides) -> SearchEvent:
    values = dict(
        user_id=1,
        query="launch",
        filters={"type": "reel"},
        results_found=2,
        top_score=0.91,
        top_results=[{"id": 3, "final_score": 0.91}],
        model_used="text-embedding-3-small",
    )
    values.update(overrides)
    return SearchEvent(**values)


@pytest.mark.asyncio
class TestSearchTelemetry:

    async def test_dispatch_writes_event_in_background(self):
        repository = MagicMock()
        repository.add = AsyncMock()

        with patch('app.services.search.telemetry.SearchLogRepository', return_value=repository):
            recorder = SearchTelemetryRecorder(FakeSession)
            recorder.dispatch(make_event())
            assert recorder.pending == 1

            await recorder.drain()

        repository.add.assert_awaited_once_with(
            user_id=1,
            query="launch",
            filters={"type": "reel"},
            results_found=2,
            top_score=0.91,
            top_results=[{"id": 3, "final_score": 0.91}],
            model_used="text-embedding-3-small",
        )
        assert recorder.pending == 0

    async def test_write_failure_is_swallowed(self):
        repository = MagicMock()
        repository.add = AsyncMock(side_effect=RuntimeError("database down"))

        with patch('app.services.search.telemetry.SearchLogRepository', return_value=repository):
            recorder = SearchTelemetryRecorder(FakeSession)
            recorder.dispatch(make_event())
            await recorder.drain()

        repository.add.assert_awaited_once()
        assert recorder.pending == 0


def test_dispatch_without_running_loop_is_dropped():
    recorder = SearchTelemetryRecorder(FakeSession)

    recorder.dispatch(make_event())

    assert recorder.pending == 0
