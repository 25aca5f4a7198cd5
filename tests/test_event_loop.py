import os
import threading
import time

import pytest

from reactornet.channel import Channel
from reactornet.event_loop import EventLoop, current_tid
from reactornet.timestamp import Timestamp, add_time


@pytest.fixture
def loop():
    ev = EventLoop()
    ev.run_after(5.0, ev.quit)  # safety net against hangs
    yield ev
    ev.close()


def test_current_tid_is_stable_and_per_thread():
    mine = current_tid()
    other = []
    t = threading.Thread(target=lambda: other.append(current_tid()))
    t.start()
    t.join()
    assert current_tid() == mine
    assert other[0] != mine


def test_loop_knows_its_thread(loop):
    assert loop.is_in_loop_thread() is True
    seen = []
    t = threading.Thread(target=lambda: seen.append(loop.is_in_loop_thread()))
    t.start()
    t.join()
    assert seen == [False]


def test_second_loop_in_same_thread_rejected(loop):
    with pytest.raises(RuntimeError):
        EventLoop()


def test_loop_can_be_recreated_after_close():
    first = EventLoop()
    first.close()
    second = EventLoop()
    try:
        assert second.is_in_loop_thread() is True
    finally:
        second.close()


def test_run_in_loop_runs_immediately(loop):
    calls = []
    loop.run_in_loop(lambda: calls.append(1))
    assert calls == [1]


def test_queue_in_loop_defers_until_loop(loop):
    calls = []
    loop.queue_in_loop(lambda: calls.append("a"))
    loop.queue_in_loop(loop.quit)
    assert calls == []
    loop.loop()
    assert calls == ["a"]
    assert loop.looping is False


def test_run_after_fires(loop):
    fired = []

    def on_timer():
        fired.append(loop.is_in_loop_thread())
        loop.quit()

    start = time.monotonic()
    loop.run_after(0.05, on_timer)
    loop.loop()
    assert fired == [True]
    assert loop.looping is False
    assert time.monotonic() - start >= 0.04


def test_run_at_orders_timers(loop):
    order = []
    now = Timestamp.now()

    def late():
        order.append("late")
        loop.quit()

    loop.run_at(add_time(now, 0.06), late)
    loop.run_at(add_time(now, 0.02), lambda: order.append("early"))
    loop.loop()
    assert order == ["early", "late"]


def test_run_every_repeats_until_cancelled(loop):
    ticks = []
    holder = []

    def tick():
        ticks.append(loop.is_in_loop_thread())
        if len(ticks) == 3:
            loop.cancel(holder[0])
            loop.run_after(0.05, loop.quit)

    holder.append(loop.run_every(0.01, tick))
    loop.loop()
    assert ticks == [True, True, True]
    assert loop.looping is False


def test_cancel_prevents_run(loop):
    fired = []
    timer_id = loop.run_after(0.01, lambda: fired.append("cancelled"))
    loop.cancel(timer_id)
    loop.run_after(0.05, loop.quit)
    loop.loop()
    assert fired == []


def test_quit_from_other_thread_wakes_loop(loop):
    trigger = threading.Timer(0.05, loop.quit)
    start = time.monotonic()
    trigger.start()
    loop.loop()
    trigger.join()
    assert time.monotonic() - start < 4.0
    assert loop.looping is False


def test_work_from_other_thread_runs_in_loop_thread(loop):
    seen = []

    def task():
        seen.append(current_tid())
        loop.quit()

    def producer():
        time.sleep(0.02)
        loop.queue_in_loop(task)

    t = threading.Thread(target=producer)
    t.start()
    loop.loop()
    t.join()
    assert seen == [current_tid()]


def test_channel_registration_and_read(loop):
    r, w = os.pipe()
    try:
        channel = Channel(loop, r)
        got = []

        def on_read(receive_time):
            got.append(os.read(r, 10))
            loop.quit()

        channel.read_callback = on_read
        channel.enable_reading()
        assert loop.has_channel(channel) is True
        os.write(w, b"hi")
        loop.loop()
        assert got == [b"hi"]
        assert loop.poll_return_time.valid() is True
        channel.disable_all()
        channel.remove()
        assert loop.has_channel(channel) is False
    finally:
        os.close(r)
        os.close(w)