import asyncio

from tab_management.scroll_restore import ScrollRestoreCoordinator
from tab_management.slot_entry import ScrollPosition
from utils.event_logger import EventType


class RecordingDeliverer:
    """Deliver function that records what reached the tab"""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.attempts = 0
        self.delivered: list[tuple[int, ScrollPosition]] = []

    async def __call__(self, handle: int, position: ScrollPosition):
        self.attempts += 1
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("listener not ready")
        self.delivered.append((handle, position))


async def test_zero_offset_clears_pending_and_schedules_nothing():
    deliver = RecordingDeliverer(failures=10)
    coordinator = ScrollRestoreCoordinator(deliver, retry_delays=[0.0])
    task = coordinator.schedule(4, 0, 300)
    await task
    assert coordinator.pending(4) == ScrollPosition(0, 300)

    assert coordinator.schedule(4, 0, 0) is None
    assert coordinator.pending(4) is None
    assert coordinator.latest_token(4) is None


async def test_retries_until_listener_answers():
    deliver = RecordingDeliverer(failures=2)
    coordinator = ScrollRestoreCoordinator(deliver, retry_delays=[0.0, 0.001, 0.002, 0.003])

    delivered = await coordinator.schedule(9, 10, 20)

    assert delivered is True
    assert deliver.attempts == 3
    assert deliver.delivered == [(9, ScrollPosition(10, 20))]
    assert coordinator.pending(9) is None


async def test_exhausted_restore_stays_pending_for_ready_signal(event_logger):
    deliver = RecordingDeliverer(failures=10)
    coordinator = ScrollRestoreCoordinator(deliver, retry_delays=[0.0, 0.001])

    delivered = await coordinator.schedule(2, 0, 75)

    assert delivered is False
    assert deliver.attempts == 2
    assert event_logger.history(EventType.SCROLL_RESTORE_EXHAUSTED)
    assert coordinator.consume(2) == ScrollPosition(0, 75)
    assert coordinator.consume(2) is None


async def test_newer_request_stops_older_retry_loop():
    """A retry loop that is waiting out its backoff never delivers once superseded"""
    deliver = RecordingDeliverer(failures=1)
    coordinator = ScrollRestoreCoordinator(deliver, retry_delays=[0.0, 0.05, 0.05])

    older = coordinator.schedule(1, 0, 100)
    await asyncio.sleep(0.01)  # older attempt 1 failed, now in backoff
    newer = coordinator.schedule(1, 0, 200)

    older_result, newer_result = await asyncio.gather(older, newer)

    assert older_result is False
    assert newer_result is True
    assert deliver.delivered == [(1, ScrollPosition(0, 200))]
    assert coordinator.pending(1) is None


async def test_in_flight_success_of_superseded_request_is_discarded(event_logger):
    release = asyncio.Event()
    seen = []

    async def deliver(handle, position):
        seen.append(position)
        if position.y == 100:
            await release.wait()
        else:
            raise ConnectionError("listener not ready")

    coordinator = ScrollRestoreCoordinator(deliver, retry_delays=[0.0, 0.01])
    older = coordinator.schedule(1, 0, 100)
    await asyncio.sleep(0)  # older is now inside deliver
    first_token = coordinator.latest_token(1)

    # Newer request is still pending when the older delivery completes
    newer = coordinator.schedule(1, 0, 200)
    release.set()
    older_result = await older

    assert older_result is False
    assert coordinator.pending(1) == ScrollPosition(0, 200)
    superseded = event_logger.history(EventType.SCROLL_RESTORE_SUPERSEDED)
    assert any(event.details["token"] == first_token for event in superseded)

    await newer


async def test_tokens_increase_across_handles():
    coordinator = ScrollRestoreCoordinator(RecordingDeliverer(), retry_delays=[0.0])
    coordinator.schedule(1, 0, 10)
    coordinator.schedule(2, 0, 10)
    coordinator.schedule(1, 0, 20)

    assert coordinator.latest_token(1) == 3
    assert coordinator.latest_token(2) == 2
    assert coordinator.is_current(1, 3)
    assert not coordinator.is_current(1, 1)
    await coordinator.drain()


async def test_consume_retires_running_loop():
    deliver = RecordingDeliverer(failures=10)
    coordinator = ScrollRestoreCoordinator(deliver, retry_delays=[0.0, 0.02, 0.02])

    task = coordinator.schedule(5, 0, 40)
    await asyncio.sleep(0.005)
    assert coordinator.consume(5) == ScrollPosition(0, 40)

    assert await task is False
    assert deliver.attempts == 1
