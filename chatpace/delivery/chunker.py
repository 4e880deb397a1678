"""Chunker: splits a finalized segment into pieces the platform accepts."""

from __future__ import annotations

import re

from chatpace.delivery.segmenter import FENCE

# A single fenced block: opening line, body, optional closing fence.
_FENCED_BLOCK = re.compile(r"\A(```[^\n`]*)\n([\s\S]*?)(?:```[ \t]*)?\Z")


def chunk(text: str, max_len: int) -> list[str]:
    """Split *text* into pieces no longer than *max_len*.

    A fenced code block is split on line boundaries and every piece is
    re-fenced with the block's opening line, so each piece renders as code.
    Other text is cut after the last newline in the second half of each
    window, else at the last space there (the space is dropped), else hard at
    *max_len*. Leading whitespace of the next piece is kept. Text that already
    fits is returned unchanged, so chunking twice is a no-op.
    """
    if max_len <= 0:
        raise ValueError("max_len must be positive")
    if not text.strip():
        return []
    if len(text) <= max_len:
        return [text]

    match = _FENCED_BLOCK.match(text)
    if match and FENCE not in match.group(2):
        pieces = _split_code_block(match.group(1), match.group(2), max_len)
        if pieces:
            return pieces
    return _split_text(text, max_len)


def _split_text(text: str, max_len: int) -> list[str]:
    pieces: list[str] = []
    rest = text
    while len(rest) > max_len:
        window = rest[:max_len + 1]
        newline = window.rfind("\n", max_len // 2 + 1, max_len)
        if newline != -1:
            piece, rest = rest[:newline + 1], rest[newline + 1:]
        else:
            space = max(window.rfind(" ", max_len // 2 + 1), window.rfind("\t", max_len // 2 + 1))
            if space != -1:
                piece, rest = rest[:space], rest[space + 1:]
            else:
                piece, rest = rest[:max_len], rest[max_len:]
        if piece.strip():
            pieces.append(piece)

    if rest.strip():
        pieces.append(rest)
    return pieces


def _split_code_block(opener: str, body: str, max_len: int) -> list[str]:
    """Pack whole lines into ``opener\\n...`````` pieces; [] if the fence leaves no room."""
    budget = max_len - len(opener) - 1 - len(FENCE)
    if budget < 2:
        return []

    lines = body.splitlines(keepends=True)
    if lines and not lines[-1].endswith("\n"):
        lines[-1] += "\n"

    pieces: list[str] = []
    current = ""
    for line in lines:
        # A line that cannot fit on its own is hard-cut into budget-sized rows.
        while len(line) > budget:
            if current:
                pieces.append(current)
                current = ""
            pieces.append(line[:budget - 1] + "\n")
            line = line[budget - 1:]
        if len(current) + len(line) > budget:
            pieces.append(current)
            current = ""
        current += line
    if current:
        pieces.append(current)

    return [f"{opener}\n{piece}{FENCE}" for piece in pieces if piece.strip()]
