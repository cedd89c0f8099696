"""Tests for line wrapping and the line index."""

from __future__ import annotations

import random

import pytest

from folio.reader.reflow import display_width, line_of, truncate, wrap

SAMPLES = [
    "AAAA BBBB CCCC",
    "short",
    "a supercalifragilisticexpialidocious word",
    "   ",
    "\n\n",
    "well-known and self-evident—truths\nwith a second paragraph",
    "漢字と かな が 混ざった 文章",
    "",
    " a漢",
    "xx a漢漢",
    "ab a漢漢 b",
]


def _texts(text: str, lines: list[tuple[int, int]]) -> list[str]:
    return [text[a:b] for a, b in lines]


class TestWrap:
    def test_spaces_consumed_as_breaks(self):
        text = "AAAA BBBB CCCC"
        assert _texts(text, wrap(text, 4)) == ["AAAA", "BBBB", "CCCC"]

    def test_shorter_than_width(self):
        assert wrap("hi", 10) == [(0, 2)]

    def test_long_word_cut_at_width(self):
        text = "AAAAAAAAAA"
        assert _texts(text, wrap(text, 4)) == ["AAAA", "AAAA", "AA"]

    def test_newline_always_breaks(self):
        text = "ab\ncd"
        assert _texts(text, wrap(text, 10)) == ["ab", "cd"]

    def test_break_after_hyphen(self):
        text = "well-known fact"
        assert _texts(text, wrap(text, 6)) == ["well-", "known", "fact"]

    def test_wide_characters(self):
        text = "漢字漢字"
        assert _texts(text, wrap(text, 4)) == ["漢字", "漢字"]

    def test_lone_wide_character_wider_than_line(self):
        assert wrap("漢字", 1) == [(0, 1), (1, 2)]

    def test_only_breaks(self):
        lines = wrap("   ", 4)
        assert lines
        assert lines[0][0] == 0
        assert lines[-1][1] <= 3

    def test_empty_text(self):
        assert wrap("", 10) == [(0, 0)]

    def test_zero_width_clamped(self):
        assert _texts("ab", wrap("ab", 0)) == ["a", "b"]

    def test_wide_character_after_space(self):
        text = " a漢"
        assert _texts(text, wrap(text, 2)) == ["", "a", "漢"]

    def test_random_text_respects_width(self):
        rng = random.Random(1234)
        for _ in range(2000):
            text = "".join(rng.choice("ab -—\n漢") for _ in range(rng.randint(0, 24)))
            width = rng.randint(2, 8)
            lines = wrap(text, width)
            for start, end in lines:
                assert display_width(text[start:end]) <= width, (text, width)
            for (_, prev_end), (start, _) in zip(lines, lines[1:]):
                assert text[prev_end:start] in ("", " ", "\n"), (text, width)

    @pytest.mark.parametrize("text", SAMPLES)
    @pytest.mark.parametrize("width", [1, 3, 8, 20])
    def test_spans_ordered_and_within_text(self, text: str, width: int):
        lines = wrap(text, width)
        for start, end in lines:
            assert 0 <= start <= end <= len(text)
        for (_, prev_end), (start, _) in zip(lines, lines[1:]):
            assert prev_end <= start
            # only consumed break characters fall between lines
            assert text[prev_end:start] in ("", " ", "\n")

    @pytest.mark.parametrize("text", SAMPLES)
    @pytest.mark.parametrize("width", [2, 3, 8, 20])
    def test_no_line_wider_than_width(self, text: str, width: int):
        for start, end in wrap(text, width):
            assert display_width(text[start:end]) <= width


class TestLineOf:
    @pytest.mark.parametrize("text", SAMPLES)
    @pytest.mark.parametrize("width", [1, 4, 12])
    def test_line_starts_and_ends_map_back(self, text: str, width: int):
        lines = wrap(text, width)
        for i, (start, end) in enumerate(lines):
            assert line_of(lines, start) == i
            if end > start:
                assert line_of(lines, end - 1) == i

    def test_offset_in_consumed_break(self):
        lines = wrap("AAAA BBBB", 4)
        # the space at 4 belongs to the line before it
        assert line_of(lines, 4) == 0

    def test_before_and_after(self):
        lines = [(0, 4), (5, 9)]
        assert line_of(lines, 0) == 0
        assert line_of(lines, 100) == 1


class TestWidth:
    def test_display_width(self):
        assert display_width("abc") == 3
        assert display_width("漢a") == 3
        assert display_width("é") == 1

    def test_truncate(self):
        assert truncate("Hello world", 5) == "Hell…"
        assert truncate("short", 10) == "short"
        assert display_width(truncate("漢字漢字漢字", 5)) <= 5
