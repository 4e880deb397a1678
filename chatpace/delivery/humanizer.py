"""Text post-processing: output cleanup and the HEAVY-degree humanizer."""

from __future__ import annotations

import re

from loguru import logger

# Common internet expressions kept as typed even though they look like acronyms.
INTERNET_EXPRESSIONS = frozenset({
    "lol", "rofl", "lmao", "lmfao", "wtf", "btw", "omg", "iirc", "afaik", "tbh",
    "imo", "imho", "fyi", "idk", "brb", "afk", "ttyl", "rn", "smh", "tysm",
})

_CODE_BLOCK = re.compile(r"```[\s\S]*?(?:```|\Z)")
_INLINE_CODE = re.compile(r"`[^`\n]+`")
_SENDER = re.compile(r"(?:\([\w ]+\)|\b[\w ]+):")
_WORD = re.compile(r"\b[A-Za-z][A-Za-z']*\b")
_ACRONYM = re.compile(r"^[A-Z]{2,}$")
_CONTROL_TOKENS = re.compile(r"(?:<\|im_end\|>|<\|file_separator\|>)\s*\Z")
_TRAILING_SPEAKER = re.compile(r"\n([^:\n`]+):\Z")


def _protect(text: str, pattern: re.Pattern[str], store: list[str], tag: str) -> str:
    def _stash(match: re.Match[str]) -> str:
        store.append(match.group())
        return f"\x00{tag}{len(store) - 1}\x00"
    return pattern.sub(_stash, text)


def _restore(text: str, store: list[str], tag: str) -> str:
    for i in range(len(store) - 1, -1, -1):
        text = text.replace(f"\x00{tag}{i}\x00", store[i])
    return text


def _split_continuation(text: str, inside_fence: bool) -> tuple[str, str]:
    """Split off the head of *text* that continues a fence opened earlier."""
    if not inside_fence:
        return "", text
    close = text.find("```")
    if close == -1:
        return text, ""
    return text[:close + 3], text[close + 3:]


class Humanizer:
    """Makes model text read more like casual chat.

    - Lowercases words, except acronyms, internet expressions, single letters
      and "Name:" sender prefixes
    - Drops semicolons
    - Leaves fenced blocks and inline code untouched
    """

    def process(self, text: str, inside_fence: bool = False) -> str:
        """Humanize a chunk. *inside_fence* marks a chunk that continues an open fence."""
        head, body = _split_continuation(text, inside_fence)
        if not body:
            return text

        blocks: list[str] = []
        inline: list[str] = []
        senders: list[str] = []
        body = _protect(body, _CODE_BLOCK, blocks, "B")
        body = _protect(body, _INLINE_CODE, inline, "I")
        body = _protect(body, _SENDER, senders, "S")

        body = _WORD.sub(self._lower_word, body)
        body = body.replace(";", "")

        body = _restore(body, senders, "S")
        body = _restore(body, inline, "I")
        body = _restore(body, blocks, "B")
        result = head + body
        if result != text:
            logger.debug(f"Humanizer: {text[:60]!r} -> {result[:60]!r}")
        return result

    __call__ = process

    @staticmethod
    def _lower_word(match: re.Match[str]) -> str:
        word = match.group()
        if len(word) == 1 or _ACRONYM.match(word) or word.lower() in INTERNET_EXPRESSIONS:
            return word
        return word.lower()


def clean_output(text: str, bot_name: str | None = None) -> str:
    """Remove model artifacts from a segment before it is chunked.

    Collapses runs of blank lines, drops trailing control tokens, and strips a
    leading "<bot name>:" prefix and a trailing "\\nName:" speaker line. Fenced
    code is never modified.
    """
    blocks: list[str] = []
    cleaned = _protect(text, _CODE_BLOCK, blocks, "B")
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    cleaned = _CONTROL_TOKENS.sub("", cleaned)
    if bot_name:
        prefix = f"{bot_name}:"
        stripped = cleaned.lstrip()
        if stripped.startswith(prefix):
            cleaned = stripped[len(prefix):].lstrip(" ")
    cleaned = _TRAILING_SPEAKER.sub("", cleaned)
    return _restore(cleaned, blocks, "B")
