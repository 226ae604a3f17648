import pytest

from mail_gateway.stats import StatsTracker, format_duration


@pytest.mark.asyncio
async def test_fresh_tracker_snapshot():
    stats = StatsTracker()
    snap = await stats.snapshot()
    assert snap.total_emails_sent == 0
    assert snap.successful_emails == 0
    assert snap.failed_emails == 0
    assert snap.last_email_sent is None
    assert snap.uptime.endswith("s")
    assert snap.uptime_seconds >= 0


@pytest.mark.asyncio
async def test_counters_follow_outcomes():
    stats = StatsTracker()
    for _ in range(3):
        await stats.record_attempt()
    await stats.record_success()
    await stats.record_success()
    await stats.record_failure()

    snap = await stats.snapshot()
    assert snap.total_emails_sent == 3
    assert snap.successful_emails == 2
    assert snap.failed_emails == 1
    assert snap.last_email_sent is not None
    assert snap.last_email_sent >= stats.start_time


@pytest.mark.asyncio
async def test_in_flight_attempt_keeps_invariant():
    stats = StatsTracker()
    await stats.record_attempt()
    snap = await stats.snapshot()
    assert snap.successful_emails + snap.failed_emails <= snap.total_emails_sent


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (0, "0s"),
        (0.75, "750ms"),
        (0.0015, "1.5ms"),
        (42.5, "42.5s"),
        (120, "2m0s"),
        (3723.5, "1h2m3.5s"),
        (90061, "25h1m1s"),
    ],
)
def test_uptime_is_formatted_like_go_durations(seconds, expected):
    assert format_duration(seconds) == expected
