"""Countdown timer warnings and expiry."""
from testhall.timer import EXPIRED, EXPIRED_MESSAGE, WARNING, WARNING_MESSAGES, CountdownTimer


def _started(clock, duration=600):
    timer = CountdownTimer(duration, clock=clock)
    timer.start()
    return timer


def test_remaining_follows_the_clock(clock):
    timer = _started(clock)
    clock.advance(125)
    assert timer.remaining_seconds() == 475
    assert timer.elapsed_seconds() == 125


def test_not_started_reports_full_duration(clock):
    timer = CountdownTimer(600, clock=clock)
    clock.advance(100)
    assert timer.remaining_seconds() == 600
    assert timer.poll() == []


def test_warnings_fire_once_each(clock):
    timer = _started(clock)
    clock.advance(300)
    events = timer.poll()
    assert [(e.kind, e.threshold) for e in events] == [(WARNING, 300)]
    assert events[0].message == WARNING_MESSAGES[300]
    assert timer.poll() == []

    clock.advance(240)
    events = timer.poll()
    assert [(e.kind, e.threshold) for e in events] == [(WARNING, 60)]
    assert events[0].message == "1 minute remaining! Finish your test quickly."


def test_only_smallest_crossed_threshold_is_reported(clock):
    timer = _started(clock)
    clock.advance(550)
    events = timer.poll()
    assert [e.threshold for e in events] == [60]
    clock.advance(5)
    assert timer.poll() == []


def test_expiry_fires_exactly_once(clock):
    timer = _started(clock)
    clock.advance(700)
    events = timer.poll()
    assert [e.kind for e in events] == [EXPIRED]
    assert events[0].message == EXPIRED_MESSAGE
    assert timer.remaining_seconds() == 0
    clock.advance(10)
    assert timer.poll() == []


def test_thresholds_at_or_above_duration_never_fire(clock):
    timer = _started(clock, duration=120)
    clock.advance(30)
    assert timer.poll() == []
    clock.advance(30)
    assert [e.threshold for e in timer.poll()] == [60]


def test_stop_freezes_remaining(clock):
    timer = _started(clock)
    clock.advance(100)
    timer.stop()
    clock.advance(1000)
    assert timer.remaining_seconds() == 500
    assert not timer.expired
    assert timer.poll() == []
