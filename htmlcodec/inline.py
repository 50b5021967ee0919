"""
Inline mark codec: converts between inline runs and inline HTML.

Encoding folds runs into a nested span tree one mark at a time, in
MARK_PRECEDENCE order, so the tag nesting is fixed by structure and repeated
encodes of the same runs are byte-identical. Decoding walks an lxml element
depth-first, carrying the set of active marks.
"""
import logging
from itertools import groupby
from typing import Any, FrozenSet, List, Optional, Sequence, Tuple

import lxml.html
from lxml import etree

from blockdoc.models import InlineRun, Mark, MarkRange, SpanNode
from htmlcodec.cleaner import collapse_whitespace, escape_html, is_blank, strip_control_chars

logger = logging.getLogger(__name__)

# Outermost first
MARK_PRECEDENCE: Tuple[Mark, ...] = (
    Mark.LINK,
    Mark.BOLD,
    Mark.ITALIC,
    Mark.UNDERLINE,
    Mark.STRIKETHROUGH,
    Mark.MARKER,
    Mark.CODE,
)

MARK_TAGS = {
    Mark.BOLD: ("<strong>", "</strong>"),
    Mark.ITALIC: ("<em>", "</em>"),
    Mark.UNDERLINE: ("<u>", "</u>"),
    Mark.STRIKETHROUGH: ("<s>", "</s>"),
    Mark.MARKER: ('<mark class="cdx-marker">', "</mark>"),
    Mark.CODE: ("<code>", "</code>"),
}

# Inline tags that decode to a mark; <a> is handled separately for its href
TAG_MARKS = {
    "strong": Mark.BOLD,
    "b": Mark.BOLD,
    "em": Mark.ITALIC,
    "i": Mark.ITALIC,
    "u": Mark.UNDERLINE,
    "ins": Mark.UNDERLINE,
    "s": Mark.STRIKETHROUGH,
    "strike": Mark.STRIKETHROUGH,
    "del": Mark.STRIKETHROUGH,
    "mark": Mark.MARKER,
    "code": Mark.CODE,
    "tt": Mark.CODE,
    "kbd": Mark.CODE,
    "samp": Mark.CODE,
}

# Discarded together with their content
DROPPED_TAGS = frozenset({
    "script", "style", "template", "noscript", "head", "title", "meta", "link", "object",
})

# Transparent, but their content starts on a new line
BREAK_TAGS = frozenset({
    "p", "div", "li", "h1", "h2", "h3", "h4", "h5", "h6", "blockquote", "pre",
    "tr", "section", "article", "header", "footer",
})

# Every other tag is transparent: children kept, tag discarded.

_SPACES = " \t\r\f"


def normalize_runs(runs: Sequence[InlineRun]) -> List[InlineRun]:
    """
    Bring runs to the form the decoder produces: control characters and
    collapsible whitespace handled as a browser would, link marks without
    href dropped, empty runs removed and neighbours with identical marks
    merged.
    """
    cleaned = [_clean_link(run) for run in runs]

    kept: List[Tuple[str, int]] = []
    for index, run in enumerate(cleaned):
        # Decoding strips control characters, so normalized runs never hold them
        for ch in strip_control_chars(run.text):
            if ch in _SPACES:
                if not kept or kept[-1][0] in (" ", "\n"):
                    continue
                kept.append((" ", index))
            elif ch == "\n":
                while kept and kept[-1][0] == " ":
                    kept.pop()
                kept.append(("\n", index))
            else:
                kept.append((ch, index))
    while kept and kept[-1][0] == " ":
        kept.pop()

    merged: List[InlineRun] = []
    for index, chars in groupby(kept, key=lambda pair: pair[1]):
        source = cleaned[index]
        text = "".join(ch for ch, _ in chars)
        if merged and merged[-1].marks == source.marks and merged[-1].href == source.href:
            merged[-1] = InlineRun(merged[-1].text + text, source.marks, source.href)
        else:
            merged.append(InlineRun(text, source.marks, source.href))
    return merged


def _clean_link(run: InlineRun) -> InlineRun:
    href = strip_control_chars(run.href or "").strip()
    if Mark.LINK in run.marks and href:
        return InlineRun(run.text, run.marks, href)
    if Mark.LINK in run.marks or run.href is not None:
        return InlineRun(run.text, run.marks - {Mark.LINK}, None)
    return run


def runs_from_ranges(text: str, ranges: Sequence[MarkRange]) -> List[InlineRun]:
    """
    Split text at every range boundary and give each slice the marks of the
    ranges covering it. Crossing ranges therefore become well-nested runs.
    When several links cover a slice, the one starting last wins.
    """
    length = len(text)
    valid = []
    for r in ranges:
        start, end = max(0, min(r.start, length)), max(0, min(r.end, length))
        if start < end:
            valid.append(MarkRange(start, end, r.mark, r.href))

    bounds = sorted({0, length} | {r.start for r in valid} | {r.end for r in valid})
    runs = []
    for start, end in zip(bounds, bounds[1:]):
        covering = [(i, r) for i, r in enumerate(valid) if r.start <= start and r.end >= end]
        marks = frozenset(r.mark for _, r in covering)
        links = [(r.start, i, r.href) for i, r in covering if r.mark is Mark.LINK and r.href]
        href = max(links)[2] if links else None
        runs.append(InlineRun(text[start:end], marks, href))
    return normalize_runs(runs)


def build_span_tree(runs: Sequence[InlineRun]) -> SpanNode:
    root = SpanNode()
    root.children = _nest(list(runs), 0)
    return root


def _nest(runs: List[InlineRun], level: int) -> List[SpanNode]:
    if level == len(MARK_PRECEDENCE):
        return [SpanNode(text=run.text) for run in runs]

    mark = MARK_PRECEDENCE[level]
    nodes: List[SpanNode] = []
    for key, group in groupby(runs, key=lambda run: _level_key(run, mark)):
        children = _nest(list(group), level + 1)
        if key is None:
            nodes.extend(children)
        else:
            nodes.append(SpanNode(mark=mark, href=key if mark is Mark.LINK else None, children=children))
    return nodes


def _level_key(run: InlineRun, mark: Mark) -> Optional[str]:
    if mark not in run.marks:
        return None
    # Adjacent links only share a tag when they point to the same place
    return run.href if mark is Mark.LINK else mark.value


def encode(runs: Sequence[InlineRun]) -> str:
    """Render runs as inline HTML."""
    out: List[str] = []
    for node in build_span_tree(normalize_runs(runs)).children:
        _serialize(node, out)
    return "".join(out)


def _serialize(node: SpanNode, out: List[str]) -> None:
    if node.mark is None:
        out.append(escape_html(node.text).replace("\n", "<br>"))
        return

    if node.mark is Mark.LINK:
        opening, closing = f'<a href="{escape_html(node.href)}">', "</a>"
    else:
        opening, closing = MARK_TAGS[node.mark]
    out.append(opening)
    for child in node.children:
        _serialize(child, out)
    out.append(closing)


class _InlineWalker:
    def __init__(self):
        self.runs: List[InlineRun] = []
        self.pending_break = False

    def emit(self, text: str, marks: FrozenSet[Mark], href: Optional[str]) -> None:
        if not text:
            return
        if self.pending_break and not is_blank(text):
            self.runs.append(InlineRun("\n"))
            self.pending_break = False
        self.runs.append(InlineRun(text, marks, href))

    def has_content(self) -> bool:
        return any(not is_blank(run.text) for run in self.runs)

    def ends_with_break(self) -> bool:
        for run in reversed(self.runs):
            text = run.text.rstrip(_SPACES)
            if text:
                return text.endswith("\n")
        return False

    def walk(self, element, marks: FrozenSet[Mark], href: Optional[str], skip=()) -> None:
        self.emit(collapse_whitespace(element.text), marks, href)

        for child in element:
            if isinstance(child.tag, str) and not any(child is s for s in skip):
                self.visit(child, marks, href, skip)
            self.emit(collapse_whitespace(child.tail), marks, href)

    def visit(self, child, marks: FrozenSet[Mark], href: Optional[str], skip) -> None:
        tag = child.tag.lower()
        if tag in DROPPED_TAGS:
            return
        if tag == "br":
            self.emit("\n", marks, href)
            self.pending_break = False
            return
        if tag in BREAK_TAGS:
            if self.has_content() and not self.ends_with_break():
                self.pending_break = True
            self.walk(child, marks, href, skip)
            if self.has_content():
                self.pending_break = True
            return

        if tag == "a":
            link = (child.get("href") or "").strip()
            if link:
                marks, href = marks | {Mark.LINK}, link
        elif tag in TAG_MARKS:
            marks = marks | {TAG_MARKS[tag]}
        self.walk(child, marks, href, skip)


def decode(element, skip=()) -> List[InlineRun]:
    """
    Read the inline content of an lxml element (the element itself is the
    container and contributes no mark). `skip` lists descendants to leave
    out, e.g. the <cite> of a blockquote or the nested lists of an item.
    """
    walker = _InlineWalker()
    walker.walk(element, frozenset(), None, skip)
    return normalize_runs(walker.runs)


def parse_fragment(fragment: str):
    """Parse an inline HTML string into a <div> container element."""
    return lxml.html.fragment_fromstring(strip_control_chars(fragment), create_parent="div")


def decode_html(fragment: str) -> List[InlineRun]:
    if is_blank(fragment):
        return []
    try:
        container = parse_fragment(fragment)
    except (etree.ParserError, ValueError, AssertionError) as e:
        logger.debug(f"Inline HTML not parseable, keeping it as text: {e}")
        return normalize_runs([InlineRun(fragment)])
    return decode(container)


def read_payload(value: Any) -> List[InlineRun]:
    """
    Read a text payload: an inline HTML string or a list of serialized runs.
    """
    if value is None:
        return []
    if isinstance(value, str):
        return decode_html(value)
    if isinstance(value, list):
        return normalize_runs([InlineRun.from_dict(item) for item in value])
    return normalize_runs([InlineRun(str(value))])


def render_payload(value: Any) -> str:
    return encode(read_payload(value))


def plain_text(runs: Sequence[InlineRun]) -> str:
    return "".join(run.text for run in runs)

