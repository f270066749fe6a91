"""Tests for celltui.input -- chunked input decoding."""

from __future__ import annotations

import asyncio

import pytest

from celltui.errors import IncompleteSequenceError
from celltui.events import KeyEvent, MouseEvent, PasteEvent, ResizeEvent
from celltui.input import (
    BRACKETED_PASTE_END,
    BRACKETED_PASTE_START,
    ESC,
    InputDecoder,
    extract_complete_sequences,
    is_complete_sequence,
    sequence_to_event,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_decoder(timeout: float = 0.05) -> tuple[InputDecoder, FakeClock]:
    clock = FakeClock()
    return InputDecoder(timeout=timeout, clock=clock), clock


def key_ids(events) -> list[str]:
    return [e.key_id for e in events if isinstance(e, KeyEvent)]


# ---------------------------------------------------------------------------
# Sequence completeness
# ---------------------------------------------------------------------------


class TestIsCompleteSequence:
    def test_plain_text(self) -> None:
        assert is_complete_sequence("a") == "not-escape"

    def test_lone_escape(self) -> None:
        assert is_complete_sequence(ESC) == "incomplete"

    def test_partial_csi(self) -> None:
        assert is_complete_sequence(f"{ESC}[1") == "incomplete"
        assert is_complete_sequence(f"{ESC}[1;5") == "incomplete"

    def test_complete_csi(self) -> None:
        assert is_complete_sequence(f"{ESC}[1;5A") == "complete"

    def test_x10_mouse_needs_six_bytes(self) -> None:
        assert is_complete_sequence(f"{ESC}[M !") == "incomplete"
        assert is_complete_sequence(f"{ESC}[M !!") == "complete"

    def test_ss3(self) -> None:
        assert is_complete_sequence(f"{ESC}O") == "incomplete"
        assert is_complete_sequence(f"{ESC}OP") == "complete"

    def test_meta_key(self) -> None:
        assert is_complete_sequence(f"{ESC}x") == "complete"


class TestExtractCompleteSequences:
    def test_mixed_text_and_escapes(self) -> None:
        seqs, rest = extract_complete_sequences(f"ab{ESC}[A{ESC}[")
        assert seqs == ["a", "b", f"{ESC}[A"]
        assert rest == f"{ESC}["

    def test_nothing_pending(self) -> None:
        assert extract_complete_sequences("xy") == (["x", "y"], "")


class TestSequenceToEvent:
    def test_key(self) -> None:
        event = sequence_to_event("q")
        assert isinstance(event, KeyEvent)
        assert event.code == "q"
        assert event.text == "q"

    def test_named_key_has_no_text(self) -> None:
        event = sequence_to_event(f"{ESC}[B")
        assert event == KeyEvent("down")
        assert event.text == ""

    def test_sgr_mouse_press_and_release(self) -> None:
        assert sequence_to_event(f"{ESC}[<0;10;5M") == MouseEvent(9, 4, "left", "press")
        assert sequence_to_event(f"{ESC}[<2;1;1m") == MouseEvent(0, 0, "right", "release")

    def test_sgr_mouse_wheel_with_ctrl(self) -> None:
        event = sequence_to_event(f"{ESC}[<81;3;4M")
        assert event == MouseEvent(2, 3, "wheel_down", "scroll", frozenset({"ctrl"}))

    def test_sgr_mouse_drag(self) -> None:
        event = sequence_to_event(f"{ESC}[<32;2;2M")
        assert isinstance(event, MouseEvent)
        assert event.action == "move"

    def test_x10_mouse(self) -> None:
        # button 0 at column 1, row 1
        assert sequence_to_event(f"{ESC}[M !!") == MouseEvent(0, 0, "left", "press")

    def test_resize_report(self) -> None:
        assert sequence_to_event(f"{ESC}[8;30;100t") == ResizeEvent(100, 30)

    def test_unrecognized(self) -> None:
        assert sequence_to_event(f"{ESC}[?1;2c") is None


# ---------------------------------------------------------------------------
# InputDecoder.feed
# ---------------------------------------------------------------------------


class TestFeed:
    def test_plain_keys_in_order(self) -> None:
        decoder, _ = make_decoder()
        assert key_ids(decoder.feed(b"ab\r")) == ["a", "b", "enter"]

    def test_bytes_and_str_accepted(self) -> None:
        decoder, _ = make_decoder()
        assert key_ids(decoder.feed("x")) == ["x"]
        assert key_ids(decoder.feed(b"y")) == ["y"]

    def test_split_escape_sequence(self) -> None:
        decoder, _ = make_decoder()
        assert decoder.feed(b"\x1b") == []
        assert decoder.feed(b"[") == []
        assert decoder.pending == f"{ESC}["
        assert key_ids(decoder.feed(b"A")) == ["up"]
        assert decoder.pending == ""
        assert decoder.deadline is None

    def test_split_utf8_character(self) -> None:
        decoder, _ = make_decoder()
        data = "é".encode("utf-8")
        assert decoder.feed(data[:1]) == []
        events = decoder.feed(data[1:])
        assert [e.code for e in events] == ["é"]

    def test_ctrl_c(self) -> None:
        decoder, _ = make_decoder()
        (event,) = decoder.feed(b"\x03")
        assert event.matches("ctrl+c")

    def test_unrecognized_sequence_recorded(self) -> None:
        decoder, _ = make_decoder()
        assert decoder.feed(b"\x1b[?1;2c") == []
        (dropped,) = decoder.diagnostics
        assert dropped.reason == "unrecognized"
        assert dropped.data == b"\x1b[?1;2c"

    def test_events_carry_timestamps(self) -> None:
        decoder, _ = make_decoder()
        (event,) = decoder.feed(b"z")
        assert event.timestamp > 0


# ---------------------------------------------------------------------------
# Bracketed paste
# ---------------------------------------------------------------------------


class TestPaste:
    def test_paste_in_one_chunk(self) -> None:
        decoder, _ = make_decoder()
        events = decoder.feed(f"a{BRACKETED_PASTE_START}hi\x1b[A there{BRACKETED_PASTE_END}b")
        assert isinstance(events[1], PasteEvent)
        assert events[1].text == "hi\x1b[A there"
        assert key_ids(events) == ["a", "b"]

    def test_paste_across_chunks(self) -> None:
        decoder, _ = make_decoder()
        assert decoder.feed(f"{BRACKETED_PASTE_START}line one\n") == []
        assert decoder.pending == "line one\n"
        (event,) = decoder.feed(f"line two{BRACKETED_PASTE_END}")
        assert event == PasteEvent("line one\nline two")


# ---------------------------------------------------------------------------
# Timeouts
# ---------------------------------------------------------------------------


class TestTimeouts:
    def test_lone_escape_becomes_escape_key(self) -> None:
        decoder, clock = make_decoder()
        decoder.feed(b"\x1b")
        assert decoder.expire() == []
        clock.advance(0.05)
        assert key_ids(decoder.expire()) == ["escape"]
        assert decoder.pending == ""

    def test_incomplete_sequence_dropped_after_timeout(self) -> None:
        decoder, clock = make_decoder()
        assert decoder.feed(b"\x1b[1") == []
        clock.advance(0.049)
        assert decoder.expire() == []
        assert decoder.diagnostics == []
        clock.advance(0.002)
        assert decoder.expire() == []
        (dropped,) = decoder.diagnostics
        assert dropped.reason == "timeout"
        assert dropped.data == b"\x1b[1"
        assert decoder.pending == ""

    def test_dropped_sequence_as_error(self) -> None:
        decoder, clock = make_decoder()
        decoder.feed(b"\x1b[1")
        clock.advance(1)
        decoder.expire()
        error = decoder.diagnostics[0].as_error()
        assert isinstance(error, IncompleteSequenceError)
        assert error.data == b"\x1b[1"

    def test_deadline_starts_at_first_partial_byte(self) -> None:
        decoder, clock = make_decoder()
        decoder.feed(b"\x1b")
        clock.advance(0.03)
        decoder.feed(b"[")
        assert decoder.deadline == pytest.approx(100.05)

    def test_input_after_drop_decodes_normally(self) -> None:
        decoder, clock = make_decoder()
        decoder.feed(b"\x1b[1")
        clock.advance(0.1)
        decoder.expire()
        assert key_ids(decoder.feed(b"k")) == ["k"]

    def test_partial_utf8_dropped_after_timeout(self) -> None:
        decoder, clock = make_decoder()
        assert decoder.feed(b"\xf0\x9f\x98") == []
        assert decoder.deadline == pytest.approx(100.05)
        clock.advance(0.05)
        assert decoder.expire() == []
        (dropped,) = decoder.diagnostics
        assert dropped.reason == "timeout"
        assert dropped.data == b"\xf0\x9f\x98"
        assert key_ids(decoder.feed(b"a")) == ["a"]

    def test_escape_with_partial_utf8_is_dropped(self) -> None:
        decoder, clock = make_decoder()
        decoder.feed(b"\x1b\xc3")
        clock.advance(0.05)
        assert decoder.expire() == []
        assert decoder.diagnostics[0].data == b"\x1b\xc3"

    def test_utf8_completed_in_time_decodes(self) -> None:
        decoder, clock = make_decoder()
        decoder.feed(b"\xc3")
        clock.advance(0.01)
        events = decoder.feed(b"\xa9")
        assert [e.code for e in events] == ["\u00e9"]
        assert decoder.deadline is None
        assert decoder.diagnostics == []

    def test_reset_discards_everything(self) -> None:
        decoder, _ = make_decoder()
        decoder.feed(f"{BRACKETED_PASTE_START}abc")
        decoder.reset()
        assert decoder.pending == ""
        assert key_ids(decoder.feed(b"q")) == ["q"]


class TestTimeoutsWithEventLoop:
    @pytest.mark.asyncio
    async def test_escape_delivered_through_callback(self) -> None:
        decoder = InputDecoder(timeout=0.01)
        received: list = []
        decoder.on_event(received.append)
        decoder.feed(b"\x1b")
        await asyncio.sleep(0.05)
        assert key_ids(received) == ["escape"]

    @pytest.mark.asyncio
    async def test_partial_sequence_dropped_by_timer(self) -> None:
        decoder = InputDecoder(timeout=0.01)
        received: list = []
        decoder.on_event(received.append)
        decoder.feed(b"\x1b[1")
        await asyncio.sleep(0.05)
        assert received == []
        assert [d.reason for d in decoder.diagnostics] == ["timeout"]

    @pytest.mark.asyncio
    async def test_completion_cancels_timer(self) -> None:
        decoder = InputDecoder(timeout=0.01)
        received: list = []
        decoder.on_event(received.append)
        decoder.feed(b"\x1b")
        events = decoder.feed(b"[B")
        await asyncio.sleep(0.05)
        assert key_ids(events) == ["down"]
        assert received == []
        assert decoder.diagnostics == []
