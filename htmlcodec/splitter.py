"""
Splits an HTML string into its top-level nodes, keeping the exact source
text of each one so unclassified nodes can be stored without any
re-serialization.
"""
import re
import logging
from dataclasses import dataclass
from html.parser import HTMLParser
from typing import List, Optional, Tuple

from htmlcodec.cleaner import is_blank

logger = logging.getLogger(__name__)

VOID_TAGS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input", "keygen",
    "link", "meta", "param", "source", "track", "wbr",
})

# Document wrappers whose children are treated as top level
UNWRAPPED_TAGS = frozenset({"html", "head", "body"})

# Dropped at top level
STRIPPED_TAGS = frozenset({
    "script", "style", "meta", "title", "link", "base", "noscript", "template",
})

# Loose text and these elements are gathered into one paragraph
INLINE_TAGS = frozenset({
    "a", "abbr", "b", "bdi", "bdo", "br", "cite", "code", "data", "del", "dfn",
    "em", "font", "i", "ins", "kbd", "mark", "q", "s", "samp", "small", "span",
    "strike", "strong", "sub", "sup", "time", "tt", "u", "var",
})

# Opening one of these ends a top-level <p> that was never closed
CLOSES_PARAGRAPH = frozenset({
    "address", "article", "aside", "blockquote", "details", "div", "dl",
    "fieldset", "figure", "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6",
    "header", "hr", "main", "nav", "ol", "p", "pre", "section", "table", "ul",
})

_IGNORED = "!"


@dataclass
class TopLevelNode:
    html: str
    tag: Optional[str] = None  # None for a run of loose text and inline elements

    @property
    def inline(self) -> bool:
        return self.tag is None


class TopLevelSplitter(HTMLParser):
    """
    Records the source span of every top-level element. Nested markup is
    only tracked deeply enough to find where each top-level element ends.
    """
    def __init__(self, source: str):
        super().__init__(convert_charrefs=True)
        self.source = source
        self.spans: List[Tuple[int, int, str]] = []
        self._line_starts = [0] + [m.end() for m in re.finditer("\n", source)]
        self._stack: List[str] = []
        self._open_start = 0

    def _offset(self) -> int:
        line, column = self.getpos()
        return self._line_starts[line - 1] + column

    def _end_of_markup(self, start: int, terminator: str = ">") -> int:
        end = self.source.find(terminator, start)
        if end == -1:
            return len(self.source)
        return end + len(terminator)

    def _close_open(self, end: int) -> None:
        self.spans.append((self._open_start, end, self._stack[0]))
        self._stack = []

    def handle_starttag(self, tag, attrs):
        start = self._offset()
        end = start + len(self.get_starttag_text() or "")

        if self._stack and self._stack[0] == "p" and tag in CLOSES_PARAGRAPH:
            self._close_open(start)

        if self._stack:
            if tag not in VOID_TAGS:
                self._stack.append(tag)
            return

        if tag in UNWRAPPED_TAGS:
            self.spans.append((start, end, _IGNORED))
        elif tag in VOID_TAGS:
            self.spans.append((start, end, tag))
        else:
            self._stack = [tag]
            self._open_start = start

    def handle_startendtag(self, tag, attrs):
        if self._stack:
            return
        start = self._offset()
        end = start + len(self.get_starttag_text() or "")
        self.spans.append((start, end, _IGNORED if tag in UNWRAPPED_TAGS else tag))

    def handle_endtag(self, tag):
        start = self._offset()
        if not self._stack:
            # Stray end tag or the close of a document wrapper
            self.spans.append((start, self._end_of_markup(start), _IGNORED))
            return
        if tag not in self._stack:
            return

        while self._stack[-1] != tag:
            self._stack.pop()
        if len(self._stack) == 1:
            self._close_open(self._end_of_markup(start))
        else:
            self._stack.pop()

    def handle_comment(self, data):
        if not self._stack:
            start = self._offset()
            # Bogus comments such as <!x> end at the first '>'
            terminator = "-->" if self.source.startswith("<!--", start) else ">"
            self.spans.append((start, self._end_of_markup(start + 2, terminator), _IGNORED))

    def handle_decl(self, decl):
        if not self._stack:
            start = self._offset()
            self.spans.append((start, self._end_of_markup(start), _IGNORED))

    def handle_pi(self, data):
        self.handle_decl(data)

    def unknown_decl(self, data):
        self.handle_decl(data)

    def close(self):
        super().close()
        if self._stack:
            # Unclosed element runs to the end of the input
            self._close_open(len(self.source))


def split_top_level(source: str) -> List[TopLevelNode]:
    """
    Split HTML into top-level nodes in source order. Consecutive loose text
    and inline elements form a single node; whitespace between blocks,
    comments, doctypes, document wrappers and stripped tags are dropped.
    """
    splitter = TopLevelSplitter(source)
    splitter.feed(source)
    splitter.close()

    nodes: List[TopLevelNode] = []
    group: List[int] = []  # [start, end] of the pending inline run

    def extend_group(start: int, end: int) -> None:
        if group:
            group[1] = end
        else:
            group.extend([start, end])

    def flush_group() -> None:
        if group:
            html = source[group[0]:group[1]]
            if not is_blank(html):
                nodes.append(TopLevelNode(html=html))
            group.clear()

    position = 0
    for start, end, tag in splitter.spans:
        if start > position:
            gap = source[position:start]
            if not is_blank(gap) or group:
                extend_group(position, start)
        position = max(position, end)

        if tag == _IGNORED or tag in STRIPPED_TAGS:
            if tag in STRIPPED_TAGS:
                logger.debug(f"Stripping top-level <{tag}>")
            continue
        if tag in INLINE_TAGS:
            extend_group(start, end)
        else:
            flush_group()
            nodes.append(TopLevelNode(html=source[start:end], tag=tag))

    if position < len(source) and not is_blank(source[position:]):
        extend_group(position, len(source))
    flush_group()
    return nodes
