"""Tests for the message chunker."""

import pytest

from chatpace.delivery.chunker import chunk


class TestChunk:
    def test_short_text_unchanged(self):
        assert chunk("Sure, here's the code:\n", 1950) == ["Sure, here's the code:\n"]

    def test_blank_input_yields_nothing(self):
        assert chunk("", 10) == []
        assert chunk("   \n\t", 10) == []

    def test_prefers_whitespace_near_limit(self):
        text = "alpha beta gamma delta"
        assert chunk(text, 12) == ["alpha beta", "gamma delta"]

    def test_hard_cut_without_whitespace(self):
        assert chunk("x" * 25, 10) == ["x" * 10, "x" * 10, "x" * 5]

    def test_ignores_whitespace_in_first_half(self):
        # The only space is too early to be a sensible cut point.
        text = "ab " + "c" * 20
        pieces = chunk(text, 10)
        assert pieces[0] == "ab " + "c" * 7
        assert all(len(p) <= 10 for p in pieces)

    def test_rejects_non_positive_limit(self):
        with pytest.raises(ValueError):
            chunk("text", 0)

    @pytest.mark.parametrize("limit", [5, 17, 80])
    def test_idempotent_and_bounded(self, limit):
        text = (
            "Lorem ipsum dolor sit amet, consectetur adipiscing elit. "
            "Sed do eiusmod tempor incididunt ut labore et dolore magna aliqua.\n"
            + "z" * 130
        )
        pieces = chunk(text, limit)

        assert all(len(p) <= limit for p in pieces)
        assert [q for p in pieces for q in chunk(p, limit)] == pieces

    def test_newline_cut_keeps_next_line_indentation(self):
        assert chunk("first line here\n    second line", 20) == ["first line here\n", "    second line"]


class TestCodeBlockChunks:
    def test_indented_block_is_split_on_lines_and_refenced(self):
        body = "def f():\n" + "".join(f"    x{i} = {i}\n" for i in range(30))
        text = "```py\n" + body + "```"

        pieces = chunk(text, 100)

        assert len(pieces) > 1
        for piece in pieces:
            assert len(piece) <= 100
            assert piece.startswith("```py\n")
            assert piece.endswith("\n```")
        rebuilt = "".join(p[len("```py\n"):-len("```")] for p in pieces)
        assert rebuilt == body

    def test_overlong_line_is_hard_cut_inside_fences(self):
        pieces = chunk("```\n" + "x" * 50 + "\n```", 20)

        assert all(len(p) <= 20 for p in pieces)
        assert all(p.startswith("```\n") and p.endswith("```") for p in pieces)
        assert sum(p.count("x") for p in pieces) == 50

    def test_unclosed_block_pieces_are_closed(self):
        pieces = chunk("```sh\n" + "echo hi\n" * 10, 40)

        assert all(p.count("```") == 2 for p in pieces)
        assert "".join(pieces).count("echo hi") == 10

    def test_fence_too_long_for_limit_falls_back_to_text(self):
        pieces = chunk("```python\nprint(1)\n```", 10)
        assert all(len(p) <= 10 for p in pieces)
