"""
Source spans.

A span is a half-open ``[start, end)`` range of offsets into the source
string. Tokens, AST nodes, IR nodes and diagnostics all carry one.

Offsets index the decoded ``str``, so they count code points, not UTF-8
bytes. The two agree for ASCII source.
"""

from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class Span:
    """Half-open offset range into the source text."""
    start: int
    end: int

    @classmethod
    def point(cls, offset: int) -> "Span":
        """An empty span at ``offset``."""
        return cls(offset, offset)

    def merge(self, other: "Span") -> "Span":
        """Smallest span covering both ``self`` and ``other``."""
        return Span(min(self.start, other.start), max(self.end, other.end))

    def slice(self, source: str) -> str:
        """The source text covered by this span."""
        return source[self.start:self.end]

    def is_empty(self) -> bool:
        return self.start == self.end

    def __len__(self) -> int:
        return self.end - self.start

    def __str__(self) -> str:
        return f"{self.start}..{self.end}"
