"""Tests for debounce.py - trailing-edge deferred task."""

from __future__ import annotations

import threading

from quillpad.debounce import Debouncer


class TestDebouncer:
    def test_schedule_starts_timer_with_delay(self, fake_timers) -> None:
        debouncer = Debouncer(0.5, timer_factory=fake_timers)
        debouncer.schedule(lambda: None)
        assert len(fake_timers.live) == 1
        assert fake_timers.live[0].interval == 0.5
        assert debouncer.pending

    def test_burst_coalesces_to_latest_callback(self, fake_timers) -> None:
        calls: list[int] = []
        debouncer = Debouncer(0.5, timer_factory=fake_timers)
        for i in range(5):
            debouncer.schedule(lambda i=i: calls.append(i))

        assert len(fake_timers.live) == 1
        fake_timers.fire_all()
        assert calls == [4]
        assert not debouncer.pending

    def test_cancel(self, fake_timers) -> None:
        calls: list[int] = []
        debouncer = Debouncer(0.5, timer_factory=fake_timers)
        debouncer.schedule(lambda: calls.append(1))
        assert debouncer.cancel() is True
        fake_timers.fire_all()
        assert calls == []
        assert debouncer.cancel() is False

    def test_flush_runs_synchronously(self, fake_timers) -> None:
        calls: list[str] = []
        debouncer = Debouncer(0.5, timer_factory=fake_timers)
        debouncer.schedule(lambda: calls.append(threading.current_thread().name))
        assert debouncer.flush() is True
        assert calls == [threading.current_thread().name]
        assert fake_timers.live == []
        assert debouncer.flush() is False

    def test_stale_timer_does_not_run_newer_callback(self, fake_timers) -> None:
        calls: list[str] = []
        debouncer = Debouncer(0.5, timer_factory=fake_timers)
        debouncer.schedule(lambda: calls.append("first"))
        stale = fake_timers.created[0]
        debouncer.schedule(lambda: calls.append("second"))

        # The first timer lost the race: it fires anyway after being cancelled
        stale.function()
        assert calls == []
        fake_timers.fire_all()
        assert calls == ["second"]

    def test_callback_error_is_logged(self, fake_timers, caplog) -> None:
        def boom() -> None:
            raise RuntimeError("disk gone")

        debouncer = Debouncer(0.5, timer_factory=fake_timers, name="flush test")
        debouncer.schedule(boom)
        fake_timers.fire_all()
        assert "flush test callback failed" in caplog.text

    def test_real_timer(self) -> None:
        fired = threading.Event()
        debouncer = Debouncer(0.01)
        debouncer.schedule(fired.set)
        assert fired.wait(2.0)
