"""
Inline markdown for rich document runs.

Todoist content may carry `[text](url)`, `**bold**` and `*italic*`. A line is
modelled as plain text plus a tuple of style spans. Each markup pass finds
its matches on the current plain text, deletes the marker characters and
adds a span over the inner text; spans from earlier passes are remapped
through the deletions. Nothing is edited in place, so match order does not
matter within a pass.

Passes run links, then bold, then italics.
"""
from __future__ import annotations

import bisect
import dataclasses as dc
import re
from typing import Iterable, Literal, Optional

Style = Literal["bold", "italic", "link"]

LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
BOLD_RE = re.compile(r"\*\*(.*?)\*\*")
ITALIC_RE = re.compile(r"\*([^*]+)\*")


@dc.dataclass(frozen=True)
class Span:
    start: int
    end: int  # exclusive
    style: Style
    url: Optional[str] = None


@dc.dataclass(frozen=True)
class StyledText:
    plain: str
    spans: tuple[Span, ...] = ()

    def with_span(self, start: int, end: int, style: Style, url: Optional[str] = None) -> "StyledText":
        if end <= start:
            return self
        return StyledText(self.plain, self.spans + (Span(start, end, style, url),))

    def styles_at(self, i: int) -> tuple[bool, bool, Optional[str]]:
        bold = italic = False
        url = None
        for s in self.spans:
            if s.start <= i < s.end:
                if s.style == "bold":
                    bold = True
                elif s.style == "italic":
                    italic = True
                else:
                    url = s.url
        return bold, italic, url

    def runs(self) -> list[tuple[str, bool, bool, Optional[str]]]:
        """Split into maximal (text, bold, italic, url) runs."""
        cuts = sorted({0, len(self.plain), *(s.start for s in self.spans), *(s.end for s in self.spans)})
        out: list[tuple[str, bool, bool, Optional[str]]] = []
        for a, b in zip(cuts, cuts[1:]):
            if a >= b or b > len(self.plain):
                continue
            bold, italic, url = self.styles_at(a)
            if out and out[-1][1:] == (bold, italic, url):
                out[-1] = (out[-1][0] + self.plain[a:b], bold, italic, url)
            else:
                out.append((self.plain[a:b], bold, italic, url))
        return out


def _delete_ranges(st: StyledText, deletions: list[tuple[int, int]], added: Iterable[Span]) -> StyledText:
    """Drop the character ranges in `deletions` and remap every span (old and new)."""
    deletions = sorted(deletions)
    starts = [a for a, _ in deletions]
    # removed_before[k] = chars deleted by the first k ranges
    removed_before = [0]
    for a, b in deletions:
        removed_before.append(removed_before[-1] + (b - a))

    def remap(p: int) -> int:
        k = bisect.bisect_right(starts, p)
        if k == 0:
            return p
        a, b = deletions[k - 1]
        return p - removed_before[k - 1] - (min(p, b) - a)

    pieces = []
    cursor = 0
    for a, b in deletions:
        pieces.append(st.plain[cursor:a])
        cursor = b
    pieces.append(st.plain[cursor:])

    spans = []
    for s in (*st.spans, *added):
        start, end = remap(s.start), remap(s.end)
        if end > start:
            spans.append(Span(start, end, s.style, s.url))
    return StyledText("".join(pieces), tuple(spans))


def _apply_links(st: StyledText) -> StyledText:
    deletions: list[tuple[int, int]] = []
    added: list[Span] = []
    for m in LINK_RE.finditer(st.plain):
        deletions += [(m.start(), m.start(1)), (m.end(1), m.end())]
        added.append(Span(m.start(1), m.end(1), "link", m.group(2)))
    return _delete_ranges(st, deletions, added) if deletions else st


def _apply_emphasis(st: StyledText, pattern: re.Pattern, style: Style) -> StyledText:
    deletions: list[tuple[int, int]] = []
    added: list[Span] = []
    for m in pattern.finditer(st.plain):
        deletions += [(m.start(), m.start(1)), (m.end(1), m.end())]
        added.append(Span(m.start(1), m.end(1), style))
    return _delete_ranges(st, deletions, added) if deletions else st


def apply_markdown(st: StyledText) -> StyledText:
    st = _apply_links(st)
    st = _apply_emphasis(st, BOLD_RE, "bold")
    return _apply_emphasis(st, ITALIC_RE, "italic")


def render_inline(text: str, *, bold: Optional[tuple[int, int]] = None) -> StyledText:
    """Build a styled line from raw text, optionally forcing a bold range first."""
    st = StyledText(text)
    if bold is not None:
        st = st.with_span(bold[0], bold[1], "bold")
    return apply_markdown(st)


def strip_markdown(text: str) -> str:
    return render_inline(text).plain
