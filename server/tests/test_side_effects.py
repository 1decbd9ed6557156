from __future__ import annotations

import threading

from parish_staff.services.side_effects import SideEffectDispatcher


def test_inline_dispatch_swallows_failures():
    dispatcher = SideEffectDispatcher(inline=True)
    calls = []

    def broken():
        raise RuntimeError("boom")

    dispatcher.dispatch("broken", broken)
    dispatcher.dispatch("ok", calls.append, "done")

    assert calls == ["done"]


def test_background_dispatch_runs_and_drains():
    dispatcher = SideEffectDispatcher(max_workers=2)
    release = threading.Event()
    calls = []

    def slow(value):
        release.wait(timeout=5)
        calls.append(value)

    dispatcher.dispatch("slow", slow, "first")
    dispatcher.dispatch("broken", lambda: 1 / 0)
    assert dispatcher.drain(timeout=0.05) is False

    release.set()
    assert dispatcher.drain(timeout=5) is True
    assert calls == ["first"]
    dispatcher.shutdown(timeout=1)


def test_dispatch_after_shutdown_is_dropped():
    dispatcher = SideEffectDispatcher(max_workers=1)
    dispatcher.shutdown(timeout=1)
    calls = []

    dispatcher.dispatch("late", calls.append, "never")

    assert dispatcher.drain(timeout=1) is True
    assert calls == []
