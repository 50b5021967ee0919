import logging
from typing import Any, Callable, Dict, Iterator, List, Tuple

from blockdoc.config import DEFAULT_HEADER_LEVEL
from blockdoc.models import Block, BlockType, ListStyle
from blockdoc.validator import Validator
from htmlcodec.cleaner import escape_html
from htmlcodec.fallback import render_carrier, render_raw, render_unknown
from htmlcodec.inline import encode, plain_text, read_payload, render_payload

logger = logging.getLogger(__name__)

_validator = Validator()

# What a block renders to when its data is unusable
EMPTY_FRAGMENTS: Dict[str, str] = {
    BlockType.PARAGRAPH.value: "<p></p>",
    BlockType.HEADER.value: f"<h{DEFAULT_HEADER_LEVEL}></h{DEFAULT_HEADER_LEVEL}>",
    BlockType.LIST.value: "<ul></ul>",
    BlockType.IMAGE.value: "<figure></figure>",
    BlockType.QUOTE.value: "<blockquote></blockquote>",
    BlockType.CODE.value: "<pre><code></code></pre>",
    BlockType.DELIMITER.value: "<hr>",
    BlockType.TABLE.value: "<table></table>",
    BlockType.RAW.value: "",
}

# Deeper list levels are rendered flat into the list at this depth
MAX_LIST_DEPTH = 32

# Keys older editor versions used for the text of a list item object
_LIST_ITEM_TEXT_KEYS = ("content", "text", "value", "data")


def render(block: Block) -> str:
    """
    Render one block as an HTML fragment. Never raises for a Block: unknown
    types go to the fallback carrier and malformed data renders empty, or as a
    bare carrier for types that are stored in one.
    """
    renderer = RENDERERS.get(block.type)
    if renderer is None:
        return render_unknown(block)
    if not _validator.is_valid(block):
        empty = EMPTY_FRAGMENTS.get(block.type)
        # Types kept in a carrier still carry their data when malformed
        return render_unknown(block) if empty is None else empty
    return renderer(block)


def header_level(value: Any) -> int:
    try:
        level = int(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_HEADER_LEVEL
    return min(6, max(1, level))


def _render_paragraph(block: Block) -> str:
    return f"<p>{render_payload(block.data.get('text'))}</p>"


def _render_header(block: Block) -> str:
    level = header_level(block.data.get("level", DEFAULT_HEADER_LEVEL))
    return f"<h{level}>{render_payload(block.data.get('text'))}</h{level}>"


def _render_list(block: Block) -> str:
    return render_list_items(block.data.get("items") or [], block.data.get("style"))


def render_list_items(items: List[Any], style: Any, depth: int = 0) -> str:
    tag = "ol" if style == ListStyle.ORDERED.value else "ul"
    parts = []
    for item in items:
        text, children, child_style = _list_item(item, style)
        if children and depth >= MAX_LIST_DEPTH:
            parts.append(f"<li>{render_payload(text)}</li>")
            parts.extend(f"<li>{render_payload(t)}</li>" for t in _flat_items(children, child_style))
            continue
        nested = render_list_items(children, child_style, depth + 1) if children else ""
        parts.append(f"<li>{render_payload(text)}{nested}</li>")
    return f"<{tag}>{''.join(parts)}</{tag}>"


def _flat_items(items: List[Any], style: Any) -> Iterator[Any]:
    """Item texts of a nested list in document order, without recursing."""
    pending = list(reversed(items))
    while pending:
        text, children, _ = _list_item(pending.pop(), style)
        yield text
        pending.extend(reversed(children))


def _list_item(item: Any, style: Any) -> Tuple[Any, List[Any], Any]:
    if not isinstance(item, dict):
        return item, [], style
    if "marks" in item:
        # A single serialized run
        return [item], [], style

    text = ""
    for key in _LIST_ITEM_TEXT_KEYS:
        if key in item:
            text = item[key]
            break
    children = item.get("items")
    if not isinstance(children, list):
        children = []
    return text, children, item.get("style") or style


def _render_image(block: Block) -> str:
    data = block.data
    url = data.get("url")
    if not isinstance(url, str) or not url:
        url = data["file"]["url"]

    caption = read_payload(data.get("caption"))
    alt = data.get("alt")
    if not isinstance(alt, str):
        alt = plain_text(caption).replace("\n", " ")

    figcaption = f"<figcaption>{encode(caption)}</figcaption>" if caption else ""
    return f'<figure><img src="{escape_html(url)}" alt="{escape_html(alt)}">{figcaption}</figure>'


def _render_quote(block: Block) -> str:
    caption = render_payload(block.data.get("caption"))
    cite = f"<cite>{caption}</cite>" if caption else ""
    return f"<blockquote><p>{render_payload(block.data.get('text'))}</p>{cite}</blockquote>"


def _render_code(block: Block) -> str:
    text = block.data.get("text")
    if not isinstance(text, str):
        text = block.data.get("code", "")

    language = block.data.get("language")
    if isinstance(language, str) and language.strip():
        opening = f'<code class="language-{escape_html(language.strip())}">'
    else:
        opening = "<code>"
    return f"<pre>{opening}{escape_html(text)}</code></pre>"


def _render_delimiter(block: Block) -> str:
    return "<hr>"


def _render_table(block: Block) -> str:
    rows = block.data.get("rows")
    if not isinstance(rows, list) or not all(isinstance(row, list) for row in rows):
        rows = block.data.get("content")
    with_headings = block.data.get("withHeadings") is True

    parts = []
    for index, row in enumerate(rows):
        tag = "th" if index == 0 and with_headings else "td"
        cells = "".join(f"<{tag}>{render_payload(cell)}</{tag}>" for cell in row)
        parts.append(f"<tr>{cells}</tr>")
    return f"<table>{''.join(parts)}</table>"


def _render_link_tool(block: Block) -> str:
    link = block.data["link"]
    meta = block.data.get("meta")
    title = meta.get("title") if isinstance(meta, dict) else None
    if not isinstance(title, str) or not title.strip():
        title = link
    anchor = f'<a href="{escape_html(link)}" target="_blank" rel="noopener noreferrer">{escape_html(title)}</a>'
    return render_carrier(block, anchor)


RENDERERS: Dict[str, Callable[[Block], str]] = {
    BlockType.PARAGRAPH.value: _render_paragraph,
    BlockType.HEADER.value: _render_header,
    BlockType.LIST.value: _render_list,
    BlockType.IMAGE.value: _render_image,
    BlockType.QUOTE.value: _render_quote,
    BlockType.CODE.value: _render_code,
    BlockType.DELIMITER.value: _render_delimiter,
    BlockType.TABLE.value: _render_table,
    BlockType.RAW.value: render_raw,
    BlockType.LINK_TOOL.value: _render_link_tool,
}
