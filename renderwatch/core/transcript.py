"""Transcript buffer — append-only, ordered record of classified log lines.

Used for display only; job status never depends on what the buffer holds.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterator

from renderwatch.models.lines import Classification, LogLine


class TranscriptBuffer:
    """Append-only list of ``LogLine`` records in arrival order.

    Lines are never mutated or removed.  ``seq`` must strictly increase
    from one append to the next.
    """

    def __init__(self) -> None:
        self._lines: list[LogLine] = []

    def append(self, line: LogLine) -> LogLine:
        """Append *line*; raises ValueError if its seq does not increase."""
        if self._lines and line.seq <= self._lines[-1].seq:
            raise ValueError(
                f"Out-of-order transcript line: seq {line.seq} after "
                f"{self._lines[-1].seq}"
            )
        self._lines.append(line)
        return line

    @property
    def lines(self) -> list[LogLine]:
        """Return a copy of all lines in order."""
        return list(self._lines)

    def tail(self, n: int) -> list[LogLine]:
        """Return the last *n* lines (all lines if fewer)."""
        if n <= 0:
            return []
        return self._lines[-n:]

    def counts(self) -> dict[Classification, int]:
        """Number of lines per classification, including zero counts."""
        counter = Counter(line.classification for line in self._lines)
        return {tag: counter.get(tag, 0) for tag in Classification}

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[LogLine]:
        return iter(list(self._lines))
