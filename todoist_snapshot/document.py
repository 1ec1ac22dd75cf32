"""
A minimal rich-text document: headings, paragraphs and list items made of
styled runs. Serialised to standalone HTML for the document target, or to
rich renderables for terminal preview.
"""
from __future__ import annotations

import dataclasses as dc
import html
from typing import Iterator, Optional, Union
from urllib.parse import urlsplit

from rich.console import Group
from rich.style import Style
from rich.text import Text

from .markup import StyledText

SUBTASK_INDENT_PT = 36
# Relative links (no scheme) are kept; anything else must be one of these.
LINK_SCHEMES = frozenset({"", "http", "https", "mailto", "tel"})


@dc.dataclass(frozen=True)
class Heading:
    text: str
    level: int = 1


@dc.dataclass(frozen=True)
class Paragraph:
    text: StyledText
    italic: bool = False


@dc.dataclass(frozen=True)
class ListItem:
    text: StyledText
    nesting: int = 0


Block = Union[Heading, Paragraph, ListItem]


class Document:
    def __init__(self) -> None:
        self.blocks: list[Block] = []

    def clear(self) -> None:
        self.blocks = []

    def append_heading(self, text: str, level: int = 1) -> Heading:
        h = Heading(text, level)
        self.blocks.append(h)
        return h

    def append_paragraph(self, text: Union[str, StyledText], *, italic: bool = False) -> Paragraph:
        st = text if isinstance(text, StyledText) else StyledText(text)
        p = Paragraph(st, italic)
        self.blocks.append(p)
        return p

    def append_list_item(self, text: StyledText, *, nesting: int = 0) -> ListItem:
        li = ListItem(text, nesting)
        self.blocks.append(li)
        return li

    @property
    def title(self) -> str:
        for b in self.blocks:
            if isinstance(b, Heading) and b.level == 1:
                return b.text
        return ""

    def plain_text(self) -> str:
        out = []
        for b in self.blocks:
            if isinstance(b, Heading):
                out.append(b.text)
            elif isinstance(b, ListItem):
                out.append("  " * b.nesting + "- " + b.text.plain)
            else:
                out.append(b.text.plain)
        return "\n".join(out)


# ---------- HTML ----------

def safe_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    try:
        scheme = urlsplit(url.strip()).scheme.lower()
    except ValueError:
        return None
    return url if scheme in LINK_SCHEMES else None


def _runs_html(st: StyledText, *, italic: bool = False) -> str:
    parts = []
    for text, bold, ital, url in st.runs():
        s = html.escape(text).replace("\n", "<br>")
        url = safe_url(url)
        if ital or italic:
            s = f"<i>{s}</i>"
        if bold:
            s = f"<b>{s}</b>"
        if url:
            s = f'<a href="{html.escape(url, quote=True)}">{s}</a>'
        parts.append(s)
    return "".join(parts)


def _body_html(doc: Document) -> Iterator[str]:
    in_list = False
    for b in doc.blocks:
        if isinstance(b, ListItem):
            if not in_list:
                yield "<ul>"
                in_list = True
            style = f' style="margin-left: {SUBTASK_INDENT_PT * b.nesting}pt"' if b.nesting else ""
            yield f"<li{style}>{_runs_html(b.text)}</li>"
            continue
        if in_list:
            yield "</ul>"
            in_list = False
        if isinstance(b, Heading):
            lvl = min(max(b.level, 1), 6)
            yield f"<h{lvl}>{html.escape(b.text)}</h{lvl}>"
        else:
            yield f"<p>{_runs_html(b.text, italic=b.italic)}</p>"
    if in_list:
        yield "</ul>"


def to_html(doc: Document) -> str:
    lines = [
        "<!DOCTYPE html>",
        '<html lang="en">',
        "<head>",
        '<meta charset="utf-8">',
        f"<title>{html.escape(doc.title)}</title>",
        "</head>",
        "<body>",
        *_body_html(doc),
        "</body>",
        "</html>",
    ]
    return "\n".join(lines) + "\n"


# ---------- rich (terminal) ----------

def to_rich_text(st: StyledText, *, italic: bool = False) -> Text:
    t = Text(st.plain, style="italic" if italic else "")
    for s in st.spans:
        if s.style == "link":
            if safe_url(s.url) is None:
                continue
            t.stylize(Style(link=s.url, underline=True), s.start, s.end)
        else:
            t.stylize(s.style, s.start, s.end)
    return t


def to_renderable(doc: Document) -> Group:
    items: list[Text] = []
    for b in doc.blocks:
        if isinstance(b, Heading):
            items.append(Text(b.text, style="bold underline" if b.level == 1 else "bold"))
        elif isinstance(b, ListItem):
            items.append(Text("  " * b.nesting + "• ") + to_rich_text(b.text))
        else:
            items.append(to_rich_text(b.text, italic=b.italic))
    return Group(*items)
