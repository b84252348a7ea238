"""Tests for the wire codec — structured results vs. free text."""

from __future__ import annotations

import pytest

from renderwatch.bridge.codec import CodecError, decode_line, decode_result, encode_result
from renderwatch.models.signals import TerminalSignal, TextLine


class TestDecodeLine:
    def test_plain_text(self):
        item = decode_line("Rendering scene 3\n")
        assert item == TextLine(text="Rendering scene 3")

    def test_bytes_with_bad_utf8(self):
        item = decode_line(b"frame \xff done\r\n")
        assert isinstance(item, TextLine)
        assert item.text.startswith("frame ")
        assert item.text.endswith(" done")

    def test_success_result(self):
        item = decode_line('{"event": "render_result", "success": true, "artifact": "/o.mp4"}\n')
        assert item == TerminalSignal(success=True, artifact="/o.mp4")

    def test_failure_result_with_extra_fields(self):
        item = decode_line(
            '  {"event": "render_result", "success": false, "error": "oom", "pid": 12}'
        )
        assert item == TerminalSignal(success=False, error="oom")

    def test_empty_strings_become_none(self):
        item = decode_line('{"event": "render_result", "success": true, "artifact": ""}')
        assert isinstance(item, TerminalSignal)
        assert item.artifact is None

    @pytest.mark.parametrize(
        "raw",
        [
            '{"event": "render_result", "success": "maybe"}',
            '{"event": "render_result"',
            '{"event": "progress", "note": "render_result soon"}',
            '{"level": "info", "msg": "hello"}',
        ],
    )
    def test_malformed_or_other_json_stays_text(self, raw: str):
        item = decode_line(raw)
        assert item == TextLine(text=raw)


class TestDecodeResult:
    def test_rejects_non_object(self):
        with pytest.raises(CodecError):
            decode_result('["render_result"]')

    def test_rejects_invalid_json(self):
        with pytest.raises(CodecError):
            decode_result("{nope")


class TestEncodeResult:
    def test_encoded_result_decodes_back(self):
        signal = TerminalSignal(success=False, error="ffmpeg missing")
        assert decode_line(encode_result(signal)) == signal

    def test_omits_absent_fields(self):
        assert encode_result(TerminalSignal(success=True, artifact="/a.mp4")) == (
            '{"artifact": "/a.mp4", "event": "render_result", "success": true}'
        )
