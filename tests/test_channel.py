import pytest

from reactornet.channel import READ_EVENT, WRITE_EVENT, Channel, Event
from reactornet.timestamp import Timestamp


class RecordingLoop:
    def __init__(self):
        self.updated = []
        self.removed = []

    def update_channel(self, channel):
        self.updated.append((channel, channel.events))

    def remove_channel(self, channel):
        self.removed.append(channel)


class Owner:
    pass


@pytest.fixture
def loop():
    return RecordingLoop()


def make_recording_channel(loop):
    calls = []
    channel = Channel(loop, 5)
    channel.read_callback = lambda t: calls.append(("read", t))
    channel.write_callback = lambda: calls.append(("write",))
    channel.close_callback = lambda: calls.append(("close",))
    channel.error_callback = lambda: calls.append(("error",))
    return channel, calls


def test_new_channel_state(loop):
    channel = Channel(loop, 7)
    assert channel.fd == 7
    assert channel.index == -1
    assert channel.is_none_event()
    assert not channel.is_reading()
    assert not channel.is_writing()


def test_read_event_includes_priority_data(loop):
    channel = Channel(loop, 4)
    channel.enable_reading()
    assert channel.events == Event.IN | Event.PRI
    channel.disable_reading()
    channel.enable_writing()
    assert channel.events == Event.OUT


def test_enable_reading_updates_loop(loop):
    channel = Channel(loop, 3)
    channel.enable_reading()
    assert channel.is_reading()
    assert loop.updated == [(channel, READ_EVENT)]


def test_writing_toggles(loop):
    channel = Channel(loop, 3)
    channel.enable_reading()
    channel.enable_writing()
    assert channel.is_writing() and channel.is_reading()
    channel.disable_writing()
    assert not channel.is_writing()
    assert channel.is_reading()
    assert len(loop.updated) == 3


def test_disable_reading_keeps_writing(loop):
    channel = Channel(loop, 3)
    channel.enable_reading()
    channel.enable_writing()
    channel.disable_reading()
    assert channel.events == WRITE_EVENT


def test_disable_all(loop):
    channel = Channel(loop, 3)
    channel.enable_reading()
    channel.enable_writing()
    channel.disable_all()
    assert channel.is_none_event()
    assert loop.updated[-1] == (channel, Event.NONE)


def test_remove_goes_through_loop(loop):
    channel = Channel(loop, 3)
    channel.remove()
    assert loop.removed == [channel]


def test_hangup_without_input_closes(loop):
    channel, calls = make_recording_channel(loop)
    channel.revents = Event.HUP
    channel.handle_event(Timestamp(5))
    assert calls == [("close",)]


def test_hangup_with_input_reads_instead(loop):
    channel, calls = make_recording_channel(loop)
    channel.revents = Event.HUP | Event.IN
    stamp = Timestamp(42)
    channel.handle_event(stamp)
    assert calls == [("read", stamp)]


def test_error_read_write_order(loop):
    channel, calls = make_recording_channel(loop)
    channel.revents = Event.ERR | Event.PRI | Event.OUT
    stamp = Timestamp(9)
    channel.handle_event(stamp)
    assert calls == [("error",), ("read", stamp), ("write",)]


def test_missing_callbacks_are_skipped(loop):
    channel = Channel(loop, 3)
    channel.revents = Event.IN | Event.OUT | Event.ERR | Event.HUP
    channel.handle_event(Timestamp(1))
    assert channel.revents == Event.IN | Event.OUT | Event.ERR | Event.HUP


def test_tied_channel_runs_while_owner_alive(loop):
    channel, calls = make_recording_channel(loop)
    owner = Owner()
    channel.tie(owner)
    channel.revents = Event.OUT
    channel.handle_event(Timestamp(1))
    assert calls == [("write",)]


def test_tied_channel_ignores_events_after_owner_gone(loop):
    channel, calls = make_recording_channel(loop)
    owner = Owner()
    channel.tie(owner)
    del owner
    channel.revents = Event.IN | Event.OUT
    channel.handle_event(Timestamp(1))
    assert calls == []