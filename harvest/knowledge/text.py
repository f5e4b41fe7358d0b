"""Sentence splitting.

Splitters are plain objects passed to whoever needs them (source adapters);
there is no module level tokenizer instance.
"""

from __future__ import annotations

import re
from typing import Protocol


class SentenceSplitter(Protocol):
    def split(self, text: str) -> list[str]: ...


class RegexSentenceSplitter:
    """Split after ``.``, ``!``, ``?`` or ``…`` followed by whitespace.

    Closing quotes and brackets stay with the sentence they end. Footnote
    markers such as ``[1]`` directly after the terminator are kept too.
    """

    _BOUNDARY = re.compile(
        r"(?<=[.!?…])(?:[\"'”’)\]]*)(?:\\?\[[A-Za-z0-9*]+\])*\s+(?=\S)"
    )

    def __init__(self, min_length: int = 1) -> None:
        self.min_length = min_length

    def split(self, text: str) -> list[str]:
        sentences: list[str] = []
        start = 0
        for match in self._BOUNDARY.finditer(text):
            # keep trailing quotes/markers, drop the whitespace
            end = match.start() + len(match.group(0).rstrip())
            sentences.append(text[start:end])
            start = match.end()
        sentences.append(text[start:])
        return [s.strip() for s in sentences if len(s.strip()) >= self.min_length]
