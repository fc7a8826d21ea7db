"""Count lines, words and bytes."""

from __future__ import annotations

import sys
from dataclasses import dataclass

_WHITESPACE = frozenset(b" \r\t\n\v")


@dataclass(frozen=True)
class WordCount:
    """Line, word and byte totals."""

    lines: int
    words: int
    chars: int


def count(data: bytes) -> WordCount:
    """Count lines, words and bytes in data."""
    lines = words = 0
    inword = False
    for ch in data:
        if ch == 0x0A:
            lines += 1
        if ch in _WHITESPACE:
            inword = False
        elif not inword:
            words += 1
            inword = True
    return WordCount(lines, words, len(data))


def format_counts(counts: WordCount, name: str) -> str:
    """The report line for one input."""
    return f"{counts.lines} {counts.words} {counts.chars} {name}"


def main(argv: list[str] | None = None) -> int:
    """Report counts for each named file, or for standard input."""
    names = sys.argv[1:] if argv is None else list(argv)
    if not names:
        try:
            data = sys.stdin.buffer.read()
        except OSError:
            print("wc: read error")
            return 1
        print(format_counts(count(data), ""))
        return 0
    for name in names:
        try:
            f = open(name, "rb")
        except OSError:
            print(f"wc: cannot open {name}")
            return 1
        with f:
            try:
                data = f.read()
            except OSError:
                print("wc: read error")
                return 1
        print(format_counts(count(data), name))
    return 0